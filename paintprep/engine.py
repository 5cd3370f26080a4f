from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Tuple
import os
import shutil
import tempfile

from PIL import Image, ImageOps

from .results import ProcessResult, TierOutput
from .settings import DerivativeSettings, Geometry, SOURCE_EXTS


def is_source_image(path: Path) -> bool:
    name = path.name
    if name.startswith("."):
        return False
    return path.suffix.lower() in SOURCE_EXTS


def process_image(src_path: Path, s: DerivativeSettings) -> ProcessResult:
    """
    Back up one painting and write every resize tier for it.

    Raises on any copy, decode, encode or write failure; the caller
    decides what a failed file means for the batch.
    """
    src_path = Path(src_path)
    filename = src_path.name

    src_bytes = file_size(src_path)

    backup_path = s.backup_dir / filename
    backup_copy(src_path, backup_path)
    backup_bytes = file_size(backup_path) or 0

    outputs = []
    with Image.open(src_path) as im:
        im.load()

        # Paintings shot on a phone often carry a rotate-on-display tag.
        im = ImageOps.exif_transpose(im)
        im = resample_ready(im)

        for tier in s.tiers:
            out_path = s.tier_dir(tier) / filename

            resized = bound_fit(im, tier.max_width)
            save_jpeg(
                resized,
                out_path,
                quality=tier.quality,
                progressive=s.jpeg_progressive,
                optimize=s.jpeg_optimize,
                background=s.jpeg_background,
            )

            out_bytes = file_size(out_path)
            if out_bytes is None:
                raise OSError(f"{tier.label} output missing after write: {out_path}")

            outputs.append(
                TierOutput(
                    label=tier.label,
                    out_bytes=out_bytes,
                    width=resized.width,
                    height=resized.height,
                )
            )

    return ProcessResult(
        filename=filename,
        src_bytes=src_bytes,
        backup_bytes=backup_bytes,
        tiers=tuple(outputs),
    )


def resample_ready(im: Image.Image) -> Image.Image:
    """
    Expand palette and bilevel images to RGB(A).

    Pillow only resizes P and 1 images with NEAREST, whatever filter is
    asked for, so they must be widened before any resize.
    """
    if im.mode not in ("P", "PA", "1"):
        return im
    return im.convert("RGBA" if _has_alpha(im) else "RGB")


def render_geometry(im: Image.Image, geometry: Geometry) -> Image.Image:
    return cover_crop(im, geometry.width, geometry.height)


def bound_fit(im: Image.Image, max_width: int) -> Image.Image:
    """
    Scale down to max_width keeping the aspect ratio.

    Images already at or under the bound come back unchanged; this
    never enlarges.
    """
    w, h = im.size
    if w <= max_width:
        return im

    scale = max_width / w
    new_h = max(1, int(round(h * scale)))

    return resample_ready(im).resize((max_width, new_h), Image.Resampling.LANCZOS)


def cover_crop(im: Image.Image, width: int, height: int) -> Image.Image:
    """
    Scale until (width, height) is fully covered, then crop the overflow
    evenly from both sides. Small sources are enlarged.
    """
    if width < 1 or height < 1:
        raise ValueError(f"invalid target size {width}x{height}")

    if im.size == (width, height):
        return im

    return ImageOps.fit(resample_ready(im), (width, height), Image.Resampling.LANCZOS, centering=(0.5, 0.5))


def read_dimensions(path: Path) -> Tuple[int, int]:
    with Image.open(path) as im:
        return im.size


def save_jpeg(
    im: Image.Image,
    out_path: Path,
    quality: int,
    progressive: bool = True,
    optimize: bool = True,
    background: Tuple[int, int, int] = (255, 255, 255),
) -> None:
    if _has_alpha(im):
        im = _flatten_alpha(im, background)
    elif im.mode not in ("RGB", "L"):
        im = im.convert("RGB")

    _save_atomic(
        im,
        Path(out_path),
        "JPEG",
        quality=int(quality),
        progressive=bool(progressive),
        optimize=bool(optimize),
    )


def save_png(im: Image.Image, out_path: Path) -> None:
    if im.mode not in ("RGB", "RGBA"):
        im = im.convert("RGBA" if _has_alpha(im) else "RGB")

    _save_atomic(im, Path(out_path), "PNG", optimize=True)


def save_ico(im: Image.Image, out_path: Path, sizes: Sequence[int]) -> None:
    """Write a real multi-resolution .ico holding one square image per size."""
    if not sizes:
        raise ValueError("an .ico needs at least one size")

    biggest = max(sizes)
    base = cover_crop(im.convert("RGBA"), biggest, biggest)

    _save_atomic(base, Path(out_path), "ICO", sizes=[(n, n) for n in sorted(set(sizes))])


def backup_copy(src_path: Path, backup_path: Path) -> None:
    if Path(src_path).resolve() == Path(backup_path).resolve():
        # Re-running over the backup folder itself; the copy already exists.
        return
    Path(backup_path).parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src_path, backup_path)


def file_size(p: Path) -> Optional[int]:
    """Size in bytes, or None when the file can't be stat'ed."""
    try:
        return Path(p).stat().st_size
    except OSError:
        return None


def _save_atomic(im: Image.Image, out_path: Path, fmt: str, **save_kwargs) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)

    # Temp file in the output dir so the final rename is cheap
    fd, tmp_name = tempfile.mkstemp(prefix=".paintprep_", suffix=out_path.suffix, dir=str(out_path.parent))
    os.close(fd)
    tmp_path = Path(tmp_name)

    try:
        # Pillow chooses the encoder by format=..., not by extension
        im.save(tmp_path, format=fmt, **save_kwargs)
        tmp_path.replace(out_path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def _flatten_alpha(im: Image.Image, background_rgb: Tuple[int, int, int]) -> Image.Image:
    # Ensure we are in RGBA so alpha exists
    rgba = im.convert("RGBA")
    bg = Image.new("RGBA", rgba.size, background_rgb + (255,))
    comp = Image.alpha_composite(bg, rgba)
    return comp.convert("RGB")


def _has_alpha(im: Image.Image) -> bool:
    if im.mode in ("RGBA", "LA", "PA"):
        return True
    if im.mode == "P" and "transparency" in im.info:
        return True
    return False
