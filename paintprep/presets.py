from __future__ import annotations

from dataclasses import replace
from typing import Dict, Tuple

from .settings import DerivativeSettings, Tier


# label -> (max_width, quality)
PRESETS: Dict[str, Dict[str, Tuple[int, int]]] = {
    "site": {
        "thumbnails": (600, 85),
        "optimized": (1200, 90),
    },
    "lean": {
        "thumbnails": (400, 75),
        "optimized": (1000, 80),
    },
    "hires": {
        "thumbnails": (800, 88),
        "optimized": (2000, 92),
    },
}


def apply_preset(name: str, base: DerivativeSettings) -> DerivativeSettings:
    name = name.lower()

    table = PRESETS.get(name)
    if table is None:
        raise ValueError(f"Unknown preset: {name}")

    tiers = []
    for t in base.tiers:
        if t.label in table:
            width, quality = table[t.label]
            t = replace(t, max_width=width, quality=quality)
        tiers.append(t)

    return replace(base, tiers=tuple(tiers))


def override_tier(base: DerivativeSettings, label: str, max_width=None, quality=None) -> DerivativeSettings:
    """Return settings with one tier's width and/or quality swapped out."""
    tiers = []
    found = False
    for t in base.tiers:
        if t.label == label:
            found = True
            if max_width is not None:
                t = replace(t, max_width=int(max_width))
            if quality is not None:
                t = replace(t, quality=int(quality))
        tiers.append(t)

    if not found:
        raise ValueError(f"Unknown tier: {label}")

    return replace(base, tiers=tuple(tiers))


def validate_tier(t: Tier) -> None:
    if t.max_width < 1:
        raise ValueError(f"{t.label}: width must be at least 1 (got {t.max_width})")
    if not 1 <= t.quality <= 100:
        raise ValueError(f"{t.label}: quality must be 1-100 (got {t.quality})")
