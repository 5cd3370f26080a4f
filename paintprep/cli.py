from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from .batch import iter_images, partition, prepare_directories, process_batch
from .favicon import generate_favicons
from .og_image import generate_og_image
from .presets import PRESETS, apply_preset, override_tier, validate_tier
from .report import build_report, format_bytes, print_report, save_report_json
from .results import Failure
from .settings import (
    DEFAULT_IMAGES_DIR,
    DEFAULT_PAINTINGS_DIR,
    DerivativeSettings,
    FaviconSettings,
    OgImageSettings,
    default_workers,
)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="paintprep",
        description="Gallery image derivatives, favicons and share image",
    )
    sub = p.add_subparsers(dest="command", required=True)

    d = sub.add_parser("derive", help="Back up paintings and write thumbnail/optimized tiers")
    d.add_argument("--input", default=str(DEFAULT_PAINTINGS_DIR), help="Folder of source paintings")
    d.add_argument("--preset", choices=sorted(PRESETS), default=None, help="Tier width/quality preset")
    d.add_argument("--thumb-width", type=int, default=None, help="Thumbnail max width (default 600)")
    d.add_argument("--thumb-quality", type=int, default=None, help="Thumbnail JPEG quality (default 85)")
    d.add_argument("--full-width", type=int, default=None, help="Optimized max width (default 1200)")
    d.add_argument("--full-quality", type=int, default=None, help="Optimized JPEG quality (default 90)")
    d.add_argument("--workers", type=int, default=default_workers(), help="Files processed in parallel")
    d.add_argument("--report-json", default=None, help="Also write the report as JSON here")

    f = sub.add_parser("favicons", help="Generate favicon PNGs, favicon.ico and site.webmanifest")
    f.add_argument("--source", default=str(FaviconSettings.source), help="Painting to crop icons from")
    f.add_argument("--out", default=str(DEFAULT_IMAGES_DIR), help="Output directory")
    f.add_argument("--no-manifest", action="store_true", help="Skip site.webmanifest")

    o = sub.add_parser("og-image", help="Generate the 1200x630 Open Graph image")
    o.add_argument("--source", default=str(OgImageSettings.source), help="Painting to crop from")
    o.add_argument("--out", default=str(OgImageSettings.output_path), help="Output JPEG path")
    o.add_argument("--width", type=int, default=OgImageSettings.width)
    o.add_argument("--height", type=int, default=OgImageSettings.height)
    o.add_argument("--quality", type=int, default=OgImageSettings.quality, help="JPEG quality (1-100)")

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "derive":
            return _run_derive(args)
        if args.command == "favicons":
            return _run_favicons(args)
        if args.command == "og-image":
            return _run_og_image(args)
    except (OSError, ValueError) as ex:
        print(f"✗ Fatal error: {ex}", file=sys.stderr)
        return 1

    parser.print_help()
    return 2


def optimize_images() -> int:
    return main(["derive"] + sys.argv[1:])


def generate_favicon() -> int:
    return main(["favicons"] + sys.argv[1:])


def generate_og() -> int:
    return main(["og-image"] + sys.argv[1:])


def derive_settings_from_args(args: argparse.Namespace) -> DerivativeSettings:
    settings = DerivativeSettings(input_dir=Path(args.input), workers=max(1, int(args.workers)))

    if args.preset:
        settings = apply_preset(args.preset, settings)

    settings = override_tier(settings, "thumbnails", args.thumb_width, args.thumb_quality)
    settings = override_tier(settings, "optimized", args.full_width, args.full_quality)

    for t in settings.tiers:
        validate_tier(t)
    return settings


def _run_derive(args: argparse.Namespace) -> int:
    settings = derive_settings_from_args(args)

    print("🎨 Gallery image optimization\n")
    print("=" * 80 + "\n")

    # List first: a missing input folder must not be created as a side effect
    images = iter_images(settings.input_dir)

    prepare_directories(settings)
    print("✓ Created output directories\n")

    print(f"Found {len(images)} images to process\n")
    print("Processing images...\n")

    def on_done(done: int, total: int, outcome) -> None:
        if isinstance(outcome, Failure):
            print(f"✗ Error processing {outcome.filename}: {outcome.reason}", file=sys.stderr)
        else:
            print(f"  [{done}/{total}] ✓ {outcome.filename}")

    outcomes, summary = process_batch(settings, images=images, progress_callback=on_done)
    results, failures = partition(outcomes)

    print_report(results, summary)

    if failures:
        # Each failure was already printed with its reason as it happened
        print(f"\n✗ {len(failures)} of {summary.total_files} images failed", file=sys.stderr)
    else:
        print("\n✓ Images optimized successfully!")

    print(f"\nOriginal images backed up to: {settings.backup_dir}")
    for t in settings.tiers:
        print(f"{t.label.capitalize()} written to: {settings.tier_dir(t)}")

    if args.report_json:
        report = build_report(results, summary, failures)
        save_report_json(report, Path(args.report_json))
        print("\nReport written:", args.report_json)

    return 0


def _run_favicons(args: argparse.Namespace) -> int:
    settings = FaviconSettings(source=Path(args.source), output_dir=Path(args.out))
    if args.no_manifest:
        settings = replace(settings, manifest=None)

    print(f"🎨 Generating favicons from {settings.source.name}\n")
    print("=" * 60 + "\n")

    def on_icon(outcome) -> None:
        if isinstance(outcome, Failure):
            print(f"✗ Failed to generate {outcome.filename}: {outcome.reason}", file=sys.stderr)
        else:
            print(f"✓ Generated {outcome.filename} ({outcome.width}x{outcome.height}, {format_bytes(outcome.out_bytes)})")

    run = generate_favicons(settings, on_icon=on_icon)

    if run.manifest_path:
        print(f"✓ Generated {run.manifest_path.name}")

    print("\n" + "=" * 60)
    if run.failures:
        print(f"Done with {len(run.failures)} failed icon(s).")
    else:
        print("SUCCESS! All favicons generated.")
    print("=" * 60)

    return 0


def _run_og_image(args: argparse.Namespace) -> int:
    settings = OgImageSettings(
        source=Path(args.source),
        output_path=Path(args.out),
        width=int(args.width),
        height=int(args.height),
        quality=int(args.quality),
    )
    if not 1 <= settings.quality <= 100:
        raise ValueError(f"quality must be 1-100 (got {settings.quality})")

    print(f"🎨 Generating Open Graph image from {settings.source.name}\n")
    print("=" * 60 + "\n")

    result = generate_og_image(settings)

    sw, sh = result.source_size
    print(f"Source dimensions: {sw}x{sh}")
    print(f"Target dimensions: {settings.width}x{settings.height}\n")

    print("=" * 60)
    print("SUCCESS! OG image generated.")
    print("=" * 60)
    print(f"\n✓ Created: {result.output_path}")
    print(f"✓ Dimensions: {result.width}x{result.height}px")
    print(f"✓ File size: {format_bytes(result.out_bytes)}")
    print(f"✓ Quality: {settings.quality}%")
    return 0
