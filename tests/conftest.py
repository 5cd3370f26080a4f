from pathlib import Path

import pytest
from PIL import Image

from paintprep.settings import DerivativeSettings


def write_image(path: Path, size, fmt: str = "JPEG", mode: str = "RGB", noise: bool = False, **save_kwargs) -> Path:
    """Write a synthetic image; noisy ones compress badly, like real paintings."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if noise:
        im = Image.merge("RGB", [Image.effect_noise(size, 80) for _ in range(3)])
        if mode != "RGB":
            im = im.convert(mode)
    else:
        color = (200, 120, 40, 255) if mode == "RGBA" else (200, 120, 40)
        im = Image.new(mode, size, color)

    im.save(path, format=fmt, **save_kwargs)
    return path


@pytest.fixture
def make_image():
    return write_image


@pytest.fixture
def gallery(tmp_path):
    d = tmp_path / "paintings"
    d.mkdir()
    return d


@pytest.fixture
def settings(gallery):
    return DerivativeSettings(input_dir=gallery, workers=2)
