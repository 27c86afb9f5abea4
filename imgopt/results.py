from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .settings import ImageFormat


# Dry-run assumes every file would shrink to 85% of its size.
SIMULATED_RATIO_PERCENT = 85
SIMULATED_SAVED_PERCENT = 100 - SIMULATED_RATIO_PERCENT


class Outcome(str, Enum):
    OPTIMIZED = "optimized"
    UNCHANGED = "unchanged"
    SIMULATED = "simulated"


@dataclass(frozen=True)
class FileOutcome:
    """
    Result of pushing one file through the optimizer.

    Frozen and short-lived: the batch driver records it into RunStatistics,
    prints it, and drops it.
    """
    path: Path
    fmt: ImageFormat
    original_bytes: int
    result_bytes: int
    outcome: Outcome
    saved_percent: int

    @property
    def saved_bytes(self) -> int:
        return self.original_bytes - self.result_bytes


def classify_outcome(
    path: Path,
    fmt: ImageFormat,
    before: int,
    after: int,
    dry_run: bool = False,
) -> FileOutcome:
    """
    Turn a before/after size pair into a FileOutcome.

    In dry-run the after size is ignored and replaced by the flat 85%
    estimate; the percent is the fixed 15%, not a measurement.
    """
    if dry_run:
        estimated = before * SIMULATED_RATIO_PERCENT // 100
        return FileOutcome(path, fmt, before, estimated, Outcome.SIMULATED, SIMULATED_SAVED_PERCENT)

    if before != after:
        percent = (before - after) * 100 // before if before else 0
        return FileOutcome(path, fmt, before, after, Outcome.OPTIMIZED, percent)

    return FileOutcome(path, fmt, before, after, Outcome.UNCHANGED, 0)


@dataclass
class RunStatistics:
    """
    Running totals for one invocation. Owned by the batch driver.

    Not thread-safe: a parallel driver must guard record() with a lock.
    """
    files_processed: int = 0
    original_bytes: int = 0
    optimized_bytes: int = 0
    saved_bytes: int = 0

    def record(self, result: FileOutcome) -> None:
        self.files_processed += 1
        self.original_bytes += result.original_bytes
        self.optimized_bytes += result.result_bytes

        # Unchanged files count toward the size totals but never toward "saved".
        if result.outcome is not Outcome.UNCHANGED:
            self.saved_bytes += result.saved_bytes

    def reset(self) -> None:
        self.files_processed = 0
        self.original_bytes = 0
        self.optimized_bytes = 0
        self.saved_bytes = 0
