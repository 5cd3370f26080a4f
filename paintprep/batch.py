from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .engine import is_source_image, process_image
from .results import Failure, Outcome, ProcessResult, Success, savings_percent
from .settings import DerivativeSettings


@dataclass(frozen=True)
class BatchSummary:
    """
    Totals over the files that made it through.

    tier_labels keeps the configured tier order; the first one is what
    the gallery grid loads before any lightbox is opened.
    """
    total_files: int
    processed: int
    failed: int
    total_src_bytes: int
    tier_labels: Tuple[str, ...]
    tier_bytes: Tuple[int, ...]

    # Successful files whose source size could not be measured
    unknown_src: int = 0

    def total_for(self, label: str) -> int:
        return self.tier_bytes[self.tier_labels.index(label)]

    def saved_percent(self, label: str) -> Optional[float]:
        if self.unknown_src:
            return None
        return savings_percent(self.total_for(label), self.total_src_bytes)

    @property
    def initial_load_bytes(self) -> int:
        return self.tier_bytes[0] if self.tier_bytes else 0

    @property
    def worst_case_bytes(self) -> int:
        return sum(self.tier_bytes)


def iter_images(input_dir: Path) -> List[Path]:
    """
    Source paintings directly inside input_dir, sorted by name.

    Sub-directories (including the tier folders) and dotfiles are skipped.
    Raises if the directory can't be listed.
    """
    input_dir = Path(input_dir)
    if not input_dir.is_dir():
        raise NotADirectoryError(f"Input folder not found: {input_dir}")

    found = []
    for f in sorted(input_dir.iterdir(), key=lambda p: p.name):
        if not f.is_file():
            continue
        if not is_source_image(f):
            continue
        found.append(f)
    return found


def prepare_directories(settings: DerivativeSettings) -> List[Path]:
    dirs = [settings.backup_dir] + [settings.tier_dir(t) for t in settings.tiers]
    for d in dirs:
        d.mkdir(parents=True, exist_ok=True)
    return dirs


def run_unit(img_path: Path, settings: DerivativeSettings) -> Outcome:
    """Process one file; any error becomes a Failure instead of propagating."""
    try:
        return Success(process_image(img_path, settings))
    except Exception as ex:
        return Failure(filename=Path(img_path).name, reason=_describe(ex))


def process_batch(
    settings: DerivativeSettings,
    images: Optional[Sequence[Path]] = None,
    progress_callback: Optional[Callable[[int, int, Outcome], None]] = None,
) -> tuple[List[Outcome], BatchSummary]:
    """
    Run every file as an independent unit and wait for all of them.

    Outcomes come back in enumeration order regardless of which unit
    finished first.
    """
    if images is None:
        images = iter_images(settings.input_dir)
    image_list = list(images)
    total = len(image_list)

    outcomes: List[Outcome] = []
    if image_list:
        workers = max(1, min(int(settings.workers), total))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(run_unit, p, settings) for p in image_list]

            # Progress is reported from this thread, never from a unit
            report = progress_callback
            for done, fut in enumerate(as_completed(futures), start=1):
                if report is None:
                    continue
                try:
                    report(done, total, fut.result())
                except Exception:
                    # A broken progress sink stops progress output, not the batch
                    report = None

            outcomes = [fut.result() for fut in futures]

    successes, failures = partition(outcomes)
    summary = summarize(successes, settings, total_files=total, failed=len(failures))
    return outcomes, summary


def partition(outcomes: Sequence[Outcome]) -> tuple[List[ProcessResult], List[Failure]]:
    successes: List[ProcessResult] = []
    failures: List[Failure] = []
    for o in outcomes:
        if isinstance(o, Success):
            successes.append(o.result)
        else:
            failures.append(o)
    return successes, failures


def summarize(
    results: Sequence[ProcessResult],
    settings: DerivativeSettings,
    total_files: Optional[int] = None,
    failed: int = 0,
) -> BatchSummary:
    labels = tuple(t.label for t in settings.tiers)
    totals: Dict[str, int] = {label: 0 for label in labels}
    total_src = 0
    unknown = 0

    for r in results:
        if r.src_bytes is None:
            unknown += 1
        else:
            total_src += r.src_bytes
        for label in labels:
            totals[label] += r.tier_bytes(label)

    return BatchSummary(
        total_files=total_files if total_files is not None else len(results) + failed,
        processed=len(results),
        failed=failed,
        total_src_bytes=total_src,
        tier_labels=labels,
        tier_bytes=tuple(totals[label] for label in labels),
        unknown_src=unknown,
    )


def _describe(ex: BaseException) -> str:
    msg = str(ex).strip()
    if not msg:
        return ex.__class__.__name__
    return msg
