"""
Favicon set generation.

Every icon is a center cover-crop of one painting at an exact size, so a
tall painting and a wide one both come out square. A real multi-size
favicon.ico and a web manifest naming the large icons are written next
to the PNGs.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from PIL import Image, ImageOps

from .engine import file_size, render_geometry, resample_ready, save_ico, save_png
from .results import Failure
from .settings import FaviconSettings, Geometry, ManifestSettings


@dataclass(frozen=True)
class IconResult:
    filename: str
    width: int
    height: int
    out_bytes: Optional[int]


@dataclass
class FaviconRun:
    icons: List[IconResult] = field(default_factory=list)
    failures: List[Failure] = field(default_factory=list)
    ico: Optional[IconResult] = None
    manifest_path: Optional[Path] = None


IconCallback = Callable[[Union[IconResult, Failure]], None]


def load_source(path: Path) -> Image.Image:
    """Open and decode a single source painting. Missing files raise."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Source image not found: {path}")

    with Image.open(path) as im:
        im.load()
        return resample_ready(ImageOps.exif_transpose(im))


def generate_favicons(s: FaviconSettings, on_icon: Optional[IconCallback] = None) -> FaviconRun:
    src = load_source(s.source)

    output_dir = Path(s.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    run = FaviconRun()

    for g in s.geometries:
        outcome = _write_icon(src, g, output_dir)
        if isinstance(outcome, Failure):
            run.failures.append(outcome)
        else:
            run.icons.append(outcome)
        if on_icon:
            on_icon(outcome)

    if s.ico_sizes:
        outcome = _write_ico(src, s, output_dir)
        if isinstance(outcome, Failure):
            run.failures.append(outcome)
        else:
            run.ico = outcome
        if on_icon:
            on_icon(outcome)

    if s.manifest is not None:
        manifest = build_manifest(s.manifest, run.icons)
        run.manifest_path = write_manifest(manifest, output_dir / s.manifest.filename)

    return run


def build_manifest(m: ManifestSettings, icons: Sequence[IconResult]) -> dict:
    base = m.url_base.rstrip("/")

    entries = []
    for icon in icons:
        if min(icon.width, icon.height) < m.min_icon_size:
            continue
        entries.append(
            {
                "src": f"{base}/{icon.filename}",
                "sizes": f"{icon.width}x{icon.height}",
                "type": "image/png",
            }
        )

    return {
        "name": m.name,
        "short_name": m.short_name,
        "icons": entries,
        "theme_color": m.theme_color,
        "background_color": m.background_color,
        "display": m.display,
    }


def write_manifest(manifest: dict, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2, ensure_ascii=False)
        f.write("\n")
    return path


def _write_icon(src: Image.Image, g: Geometry, output_dir: Path) -> Union[IconResult, Failure]:
    out_path = output_dir / g.filename
    try:
        save_png(render_geometry(src, g), out_path)
    except Exception as ex:
        return Failure(filename=g.filename, reason=str(ex) or ex.__class__.__name__)

    return IconResult(filename=g.filename, width=g.width, height=g.height, out_bytes=file_size(out_path))


def _write_ico(src: Image.Image, s: FaviconSettings, output_dir: Path) -> Union[IconResult, Failure]:
    out_path = output_dir / s.ico_filename
    try:
        save_ico(src, out_path, s.ico_sizes)
    except Exception as ex:
        return Failure(filename=s.ico_filename, reason=str(ex) or ex.__class__.__name__)

    biggest = max(s.ico_sizes)
    return IconResult(filename=s.ico_filename, width=biggest, height=biggest, out_bytes=file_size(out_path))
