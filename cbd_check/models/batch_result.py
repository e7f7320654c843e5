from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .results import RunStatus, ValidationRun

"""Batch result models: per-file statistics and the aggregate of one run."""

__all__ = [
    "FileStat",
    "BatchResult",
]


@dataclass(frozen=True)
class FileStat:
    """Per-file outcome used for summary lines."""
    file_name: str
    status: RunStatus
    valid: int
    invalid: int
    warnings: int
    sections_missing: int
    elapsed_seconds: float
    error: str | None = None


@dataclass(frozen=True)
class BatchResult:
    """Aggregated results of validating several files with one rule set."""
    rule_set: str
    runs: tuple[ValidationRun, ...]
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: tuple[FileStat, ...] = field(default_factory=tuple)

    def _with_status(self, status: RunStatus) -> int:
        return sum(1 for r in self.runs if r.status is status)

    @property
    def total_files(self) -> int:
        return len(self.runs)

    @property
    def passed_files(self) -> int:
        return self._with_status(RunStatus.PASSED)

    @property
    def failed_files(self) -> int:
        return self._with_status(RunStatus.FAILED)

    @property
    def error_files(self) -> int:
        return self._with_status(RunStatus.ERROR)

    @property
    def total_invalid(self) -> int:
        return sum(r.invalid_count for r in self.runs)

    @property
    def total_warnings(self) -> int:
        return sum(r.warning_count for r in self.runs)

    @property
    def all_passed(self) -> bool:
        return self.passed_files == self.total_files
