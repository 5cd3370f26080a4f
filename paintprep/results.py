from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union


def savings_percent(derived_bytes: int, original_bytes: Optional[int]) -> Optional[float]:
    """
    Fractional size reduction, in percent, rounded to one decimal.

    Returns None when the original size is unknown or zero; there is
    nothing meaningful to compare against in either case.
    """
    if not original_bytes:
        return None
    return round((1 - derived_bytes / original_bytes) * 100.0, 1)


@dataclass(frozen=True)
class TierOutput:
    label: str
    out_bytes: int
    width: int
    height: int


@dataclass(frozen=True)
class ProcessResult:
    """
    Output of processing a single painting.

    src_bytes is None when the source could not be measured, which is
    not the same thing as a zero-byte file.
    """
    filename: str
    src_bytes: Optional[int]
    backup_bytes: int
    tiers: Tuple[TierOutput, ...]

    def tier(self, label: str) -> TierOutput:
        for t in self.tiers:
            if t.label == label:
                return t
        raise KeyError(label)

    def tier_bytes(self, label: str) -> int:
        return self.tier(label).out_bytes

    def saved_percent(self, label: str) -> Optional[float]:
        return savings_percent(self.tier_bytes(label), self.src_bytes)


@dataclass(frozen=True)
class Success:
    result: ProcessResult

    @property
    def filename(self) -> str:
        return self.result.filename


@dataclass(frozen=True)
class Failure:
    filename: str
    reason: str


Outcome = Union[Success, Failure]
