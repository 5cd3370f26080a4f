from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple


# Accepted source extensions for the gallery batch (compared lowercased).
SOURCE_EXTS = {".jpg", ".jpeg", ".png"}

DEFAULT_PAINTINGS_DIR = Path("public/images/paintings")
DEFAULT_IMAGES_DIR = Path("public/images")


@dataclass(frozen=True)
class Tier:
    """
    One resized output of the gallery batch.

    max_width is an upper bound: sources narrower than it keep their size.
    The directory is relative to the batch input directory unless absolute.
    """
    label: str
    dirname: str
    max_width: int
    quality: int


def default_tiers() -> Tuple[Tier, ...]:
    # Order matters: the first tier is what the gallery grid loads up front.
    return (
        Tier(label="thumbnails", dirname="thumbs", max_width=600, quality=85),
        Tier(label="optimized", dirname="optimized", max_width=1200, quality=90),
    )


def default_workers() -> int:
    return min(8, os.cpu_count() or 1)


@dataclass(frozen=True)
class DerivativeSettings:
    """
    All knobs for the gallery derivative batch.

    Built once by the CLI and handed to every unit of work, so nothing
    here is ever mutated while a batch runs.
    """

    input_dir: Path = DEFAULT_PAINTINGS_DIR

    # Verbatim copies of every source land here before any re-encode.
    backup_dirname: str = "originals"

    tiers: Tuple[Tier, ...] = field(default_factory=default_tiers)

    # ----- JPEG encoding -----
    jpeg_progressive: bool = True
    jpeg_optimize: bool = True
    jpeg_background: Tuple[int, int, int] = (255, 255, 255)

    # ----- Execution -----
    workers: int = field(default_factory=default_workers)

    def resolve(self, dirname: str) -> Path:
        p = Path(dirname)
        return p if p.is_absolute() else Path(self.input_dir) / p

    @property
    def backup_dir(self) -> Path:
        return self.resolve(self.backup_dirname)

    def tier_dir(self, tier: Tier) -> Path:
        return self.resolve(tier.dirname)


@dataclass(frozen=True)
class Geometry:
    """An exact output rectangle (cover-cropped, may enlarge)."""
    filename: str
    width: int
    height: int

    @property
    def size_label(self) -> str:
        return f"{self.width}x{self.height}"


def square(filename: str, size: int) -> Geometry:
    return Geometry(filename=filename, width=size, height=size)


def default_icon_geometries() -> Tuple[Geometry, ...]:
    return (
        square("favicon-16x16.png", 16),
        square("favicon-32x32.png", 32),
        square("favicon-48x48.png", 48),
        square("apple-touch-icon.png", 180),  # iOS home screen
        square("android-chrome-192x192.png", 192),
        square("android-chrome-512x512.png", 512),
    )


@dataclass(frozen=True)
class ManifestSettings:
    name: str = "Georgie Originals"
    short_name: str = "Georgie Originals"
    theme_color: str = "#ffffff"
    background_color: str = "#ffffff"
    display: str = "standalone"

    # Icons smaller than this are left out of the manifest.
    min_icon_size: int = 192

    # Prefix used for each icon "src" entry.
    url_base: str = "/public/images"
    filename: str = "site.webmanifest"


@dataclass(frozen=True)
class FaviconSettings:
    source: Path = DEFAULT_PAINTINGS_DIR / "originals" / "12_Sunflower.jpeg"
    output_dir: Path = DEFAULT_IMAGES_DIR
    geometries: Tuple[Geometry, ...] = field(default_factory=default_icon_geometries)

    # Sizes packed into favicon.ico. Empty tuple disables the .ico output.
    ico_filename: str = "favicon.ico"
    ico_sizes: Tuple[int, ...] = (16, 32, 48)

    manifest: Optional[ManifestSettings] = field(default_factory=ManifestSettings)


@dataclass(frozen=True)
class OgImageSettings:
    source: Path = DEFAULT_PAINTINGS_DIR / "originals" / "11_fiesta.jpeg"
    output_path: Path = DEFAULT_IMAGES_DIR / "og-image.jpg"
    width: int = 1200
    height: int = 630
    quality: int = 90
    jpeg_progressive: bool = True
    jpeg_optimize: bool = True

    @property
    def geometry(self) -> Geometry:
        return Geometry(filename=Path(self.output_path).name, width=self.width, height=self.height)
