from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from .engine import file_size, render_geometry, save_jpeg
from .favicon import load_source
from .settings import OgImageSettings


@dataclass(frozen=True)
class OgImageResult:
    output_path: Path
    source_size: Tuple[int, int]
    width: int
    height: int
    out_bytes: Optional[int]


def generate_og_image(s: OgImageSettings) -> OgImageResult:
    """
    Crop the share image from the center of one painting.

    There is only one output, so any failure here is fatal to the run.
    """
    src = load_source(s.source)

    geometry = s.geometry
    out = render_geometry(src, geometry)

    save_jpeg(
        out,
        Path(s.output_path),
        quality=s.quality,
        progressive=s.jpeg_progressive,
        optimize=s.jpeg_optimize,
    )

    return OgImageResult(
        output_path=Path(s.output_path),
        source_size=src.size,
        width=out.width,
        height=out.height,
        out_bytes=file_size(Path(s.output_path)),
    )
