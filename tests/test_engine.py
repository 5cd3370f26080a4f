from pathlib import Path

import pytest
from PIL import Image, UnidentifiedImageError

from paintprep.engine import (
    bound_fit,
    cover_crop,
    file_size,
    is_source_image,
    process_image,
    read_dimensions,
    resample_ready,
    save_jpeg,
)


class TestIsSourceImage:
    """Tests for is_source_image"""

    @pytest.mark.parametrize("name", ["a.jpg", "b.JPG", "c.jpeg", "d.JpEg", "e.png", "f.PNG"])
    def test_accepted_extensions(self, name):
        assert is_source_image(Path(name))

    @pytest.mark.parametrize("name", ["a.webp", "b.gif", "notes.txt", "jpg", "a.jpg.bak"])
    def test_rejected_extensions(self, name):
        assert not is_source_image(Path(name))

    def test_hidden_files_skipped(self):
        assert not is_source_image(Path(".hidden.jpg"))
        assert not is_source_image(Path("._a.jpg"))


class TestBoundFit:
    """Tests for bound_fit"""

    def test_narrow_image_not_enlarged(self):
        im = Image.new("RGB", (300, 450))
        out = bound_fit(im, 600)
        assert out.size == (300, 450)

    def test_exact_width_unchanged(self):
        im = Image.new("RGB", (600, 400))
        assert bound_fit(im, 600).size == (600, 400)

    def test_wide_image_hits_bound(self):
        im = Image.new("RGB", (2000, 1000))
        assert bound_fit(im, 600).size == (600, 300)

    def test_aspect_ratio_preserved(self):
        im = Image.new("RGB", (3000, 4000))
        out = bound_fit(im, 1200)
        assert out.size == (1200, 1600)

    def test_height_rounds_to_nearest(self):
        im = Image.new("RGB", (1000, 333))
        assert bound_fit(im, 600).size == (600, 200)

    def test_very_flat_image_keeps_one_row(self):
        im = Image.new("RGB", (5000, 1))
        assert bound_fit(im, 600).size == (600, 1)


class TestCoverCrop:
    """Tests for cover_crop"""

    @pytest.mark.parametrize("src", [(1000, 500), (500, 1000), (64, 64), (10, 7)])
    @pytest.mark.parametrize("target", [(16, 16), (180, 180), (1200, 630)])
    def test_exact_size_any_aspect(self, src, target):
        im = Image.new("RGB", src)
        assert cover_crop(im, *target).size == target

    def test_crops_from_center(self):
        # Left third red, middle third green, right third blue
        im = Image.new("RGB", (300, 100), (255, 0, 0))
        im.paste((0, 255, 0), (100, 0, 200, 100))
        im.paste((0, 0, 255), (200, 0, 300, 100))

        out = cover_crop(im, 100, 100)
        assert out.getpixel((50, 50)) == (0, 255, 0)

    def test_invalid_size_raises(self):
        with pytest.raises(ValueError):
            cover_crop(Image.new("RGB", (10, 10)), 0, 10)


class TestFileSize:
    """Tests for file_size"""

    def test_existing_file(self, tmp_path):
        p = tmp_path / "a.bin"
        p.write_bytes(b"x" * 1234)
        assert file_size(p) == 1234

    def test_zero_byte_file_is_zero(self, tmp_path):
        p = tmp_path / "empty.jpg"
        p.write_bytes(b"")
        assert file_size(p) == 0

    def test_missing_file_is_none(self, tmp_path):
        assert file_size(tmp_path / "nope.jpg") is None


class TestSaveJpeg:
    """Tests for save_jpeg"""

    def test_progressive_jpeg(self, tmp_path):
        out = tmp_path / "out.jpg"
        save_jpeg(Image.new("RGB", (64, 64), (10, 20, 30)), out, quality=85)

        with Image.open(out) as im:
            assert im.format == "JPEG"
            assert im.info.get("progressive") or im.info.get("progression")

    def test_alpha_flattened(self, tmp_path):
        out = tmp_path / "out.jpg"
        save_jpeg(Image.new("RGBA", (8, 8), (0, 0, 0, 0)), out, quality=90)

        with Image.open(out) as im:
            assert im.mode == "RGB"
            r, g, b = im.getpixel((4, 4))
            assert min(r, g, b) > 240

    def test_no_temp_files_left(self, tmp_path):
        save_jpeg(Image.new("RGB", (8, 8)), tmp_path / "out.jpg", quality=90)
        assert [p.name for p in tmp_path.iterdir()] == ["out.jpg"]


class TestProcessImage:
    """Tests for process_image"""

    def test_wide_painting(self, gallery, settings, make_image):
        src = make_image(gallery / "a.jpg", (2000, 1000), noise=True, quality=100)
        before = src.read_bytes()

        r = process_image(src, settings)

        assert r.filename == "a.jpg"
        assert r.src_bytes == len(before)
        assert (gallery / "originals" / "a.jpg").read_bytes() == before
        assert src.read_bytes() == before

        assert read_dimensions(gallery / "thumbs" / "a.jpg") == (600, 300)
        assert read_dimensions(gallery / "optimized" / "a.jpg") == (1200, 600)
        assert r.tier("thumbnails").width == 600
        assert r.saved_percent("thumbnails") > 0
        assert r.saved_percent("optimized") > 0

    def test_tiny_png_not_enlarged(self, gallery, settings, make_image):
        src = make_image(gallery / "tiny.png", (300, 200), fmt="PNG")

        r = process_image(src, settings)

        assert read_dimensions(gallery / "thumbs" / "tiny.png") == (300, 200)
        assert read_dimensions(gallery / "optimized" / "tiny.png") == (300, 200)
        assert [t.width for t in r.tiers] == [300, 300]

    def test_tier_outputs_are_jpeg(self, gallery, settings, make_image):
        src = make_image(gallery / "alpha.png", (800, 800), fmt="PNG", mode="RGBA")
        process_image(src, settings)

        with Image.open(gallery / "thumbs" / "alpha.png") as im:
            assert im.format == "JPEG"
            assert im.mode == "RGB"

    def test_corrupt_file_raises(self, gallery, settings):
        bad = gallery / "corrupt.jpg"
        bad.write_bytes(b"definitely not a jpeg")

        with pytest.raises(UnidentifiedImageError):
            process_image(bad, settings)

    def test_missing_file_raises(self, gallery, settings):
        with pytest.raises(OSError):
            process_image(gallery / "gone.jpg", settings)


def _stripes(width, height):
    """One-pixel black/white vertical stripes."""
    im = Image.new("RGB", (width, height), (0, 0, 0))
    for x in range(1, width, 2):
        im.paste((255, 255, 255), (x, 0, x + 1, height))
    return im


class TestResampleReady:
    """Tests for resample_ready"""

    def test_rgb_untouched(self):
        im = Image.new("RGB", (4, 4))
        assert resample_ready(im) is im

    def test_palette_becomes_rgb(self):
        im = Image.new("RGB", (4, 4), (10, 200, 30)).convert("P", palette=Image.Palette.ADAPTIVE, colors=4)
        assert resample_ready(im).mode == "RGB"

    def test_palette_with_transparency_keeps_alpha(self):
        im = Image.new("P", (4, 4), 0)
        im.info["transparency"] = 0
        assert resample_ready(im).mode == "RGBA"

    def test_bilevel(self):
        assert resample_ready(Image.new("1", (4, 4))).mode == "RGB"


class TestPaletteSources:
    """Palette images must be filtered, not point-sampled"""

    def test_bound_fit_averages_palette_stripes(self):
        src = _stripes(1200, 4).convert("P", palette=Image.Palette.ADAPTIVE, colors=2)

        out = bound_fit(src, 600)

        assert out.mode == "RGB"
        r, g, b = out.getpixel((300, 2))
        assert 0 < r < 255

    def test_palette_matches_rgb_result(self):
        rgb = _stripes(1200, 4)
        pal = rgb.convert("P", palette=Image.Palette.ADAPTIVE, colors=2)

        assert bound_fit(pal, 600).getpixel((300, 2)) == bound_fit(rgb, 600).getpixel((300, 2))

    def test_cover_crop_palette(self):
        src = _stripes(400, 400).convert("P", palette=Image.Palette.ADAPTIVE, colors=2)

        out = cover_crop(src, 100, 100)

        assert out.mode == "RGB"
        assert 0 < out.getpixel((50, 50))[0] < 255

    def test_palette_png_through_tiers(self, gallery, settings):
        src = gallery / "quantized.png"
        _stripes(1200, 300).convert("P", palette=Image.Palette.ADAPTIVE, colors=2).save(src, format="PNG")

        r = process_image(src, settings)

        assert r.tier("thumbnails").width == 600
        with Image.open(gallery / "thumbs" / "quantized.png") as im:
            assert im.format == "JPEG"
            assert 20 < im.getpixel((300, 150))[0] < 235
