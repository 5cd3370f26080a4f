from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .batch import BatchSummary
from .results import Failure, ProcessResult


BYTE_UNITS = ("Bytes", "KB", "MB")

RULE_WIDTH = 80


def format_bytes(n: Optional[int]) -> str:
    """
    Human size on a 1024 scale, e.g. 1536 -> "1.5 KB".

    Two decimals at most, trailing zeros dropped. MB is the largest unit.
    """
    if n is None:
        return "?"
    if n == 0:
        return "0 Bytes"

    i = 0
    while i < len(BYTE_UNITS) - 1 and n >= 1024 ** (i + 1):
        i += 1

    value = f"{n / 1024 ** i:.2f}".rstrip("0").rstrip(".")
    return f"{value} {BYTE_UNITS[i]}"


def format_percent(p: Optional[float]) -> str:
    if p is None:
        return "n/a"
    return f"{p:.1f}%"


@dataclass(frozen=True)
class FileReport:
    filename: str
    src_bytes: Optional[int]
    tier_bytes: Dict[str, int]
    saved_percent: Dict[str, Optional[float]]


@dataclass(frozen=True)
class BatchReport:
    created_utc: str
    summary: dict
    files: List[FileReport]
    failures: List[dict]


def build_report(
    results: Sequence[ProcessResult],
    summary: BatchSummary,
    failures: Sequence[Failure] = (),
) -> BatchReport:
    created_utc = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

    files: List[FileReport] = []
    for r in results:
        files.append(
            FileReport(
                filename=r.filename,
                src_bytes=r.src_bytes,
                tier_bytes={t.label: t.out_bytes for t in r.tiers},
                saved_percent={t.label: r.saved_percent(t.label) for t in r.tiers},
            )
        )

    summary_dict = {
        "total_files": summary.total_files,
        "processed": summary.processed,
        "failed": summary.failed,
        "total_src_bytes": summary.total_src_bytes,
        "unknown_src": summary.unknown_src,
        "tier_bytes": dict(zip(summary.tier_labels, summary.tier_bytes)),
        "saved_percent": {label: summary.saved_percent(label) for label in summary.tier_labels},
        "initial_load_bytes": summary.initial_load_bytes,
        "worst_case_bytes": summary.worst_case_bytes,
    }

    return BatchReport(
        created_utc=created_utc,
        summary=summary_dict,
        files=files,
        failures=[{"filename": f.filename, "reason": f.reason} for f in failures],
    )


def save_report_json(report: BatchReport, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8") as f:
        json.dump(asdict(report), f, indent=2, ensure_ascii=False)


def render_table(results: Sequence[ProcessResult], summary: BatchSummary) -> List[str]:
    """Per-file rows followed by a TOTAL row, one string per line."""
    labels = summary.tier_labels

    header = f"{'File':<32} {'Original':>10}"
    for label in labels:
        header += f"  {label.capitalize():>10} {'Saved':>7}"

    lines = [header, "-" * max(RULE_WIDTH, len(header))]

    for r in results:
        row = f"{r.filename:<32} {format_bytes(r.src_bytes):>10}"
        for label in labels:
            row += f"  {format_bytes(r.tier_bytes(label)):>10} {format_percent(r.saved_percent(label)):>7}"
        lines.append(row)

    lines.append("-" * max(RULE_WIDTH, len(header)))

    total = f"{'TOTAL':<32} {format_bytes(summary.total_src_bytes):>10}"
    for label in labels:
        total += f"  {format_bytes(summary.total_for(label)):>10} {format_percent(summary.saved_percent(label)):>7}"
    lines.append(total)

    return lines


def render_summary(summary: BatchSummary) -> List[str]:
    lines = [f"Original total size:    {format_bytes(summary.total_src_bytes)}"]

    for label in summary.tier_labels:
        name = f"{label.capitalize()} total:"
        lines.append(
            f"{name:<23} {format_bytes(summary.total_for(label))} "
            f"({format_percent(summary.saved_percent(label))} reduction)"
        )

    if summary.tier_labels:
        first = summary.tier_labels[0]
        lines.append("")
        lines.append(f"Gallery initial load:   {format_bytes(summary.initial_load_bytes)} ({first} only)")
        lines.append(f"Full gallery size:      {format_bytes(summary.worst_case_bytes)} (if all lightboxes opened)")

    return lines


def print_report(results: Sequence[ProcessResult], summary: BatchSummary) -> None:
    print("\n" + "=" * RULE_WIDTH)
    print("OPTIMIZATION REPORT")
    print("=" * RULE_WIDTH + "\n")

    for line in render_table(results, summary):
        print(line)

    print("\n" + "=" * RULE_WIDTH)
    print("SUMMARY")
    print("=" * RULE_WIDTH)

    for line in render_summary(summary):
        print(line)
