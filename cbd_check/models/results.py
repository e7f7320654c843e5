from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..engine.normalize import display_value

"""Validation result models.

Results are plain frozen values produced by one validation run and handed to
the report/summary layer; nothing is kept on the engine between runs.
"""

__all__ = [
    "Verdict",
    "FieldResult",
    "SectionResult",
    "ItemStatus",
    "ItemResult",
    "RunStatus",
    "ValidationRun",
]

NOT_FOUND_DISPLAY = "Not found in file"


class Verdict(Enum):
    VALID = "VALID"
    INVALID = "INVALID"
    WARNING = "WARNING"


@dataclass(frozen=True)
class FieldResult:
    """Outcome of one field check on one cell.

    ``row``/``col`` are 0-based; ``address`` is the display form (``Q14``).
    ``found`` is False only for lookups whose label never appeared, in which
    case there is no cell and ``row``/``col`` are -1.
    """
    label: str
    verdict: Verdict
    expected: str
    actual: Any = None
    normalized: Any = None
    row: int = -1
    col: int = -1
    address: str = ""
    sheet: str = ""
    item: str | None = None
    found: bool = True

    @property
    def actual_display(self) -> str:
        if not self.found:
            return NOT_FOUND_DISPLAY
        return display_value(self.actual)

    @property
    def display_row(self) -> int | None:
        return self.row + 1 if self.row >= 0 else None


@dataclass(frozen=True)
class SectionResult:
    """Outcome of one SectionRule on one grid.

    ``start_row`` is the first content row (inclusive) and ``end_row`` the end
    marker row (exclusive), both 0-based. ``marker_row`` is the start marker
    row when the section has one. A section whose start marker matched but
    whose end marker never did has ``found=False`` with ``start_row`` set.
    """
    name: str
    found: bool
    sheet: str = ""
    start_row: int | None = None
    end_row: int | None = None
    marker_row: int | None = None
    fields: tuple[FieldResult, ...] = ()
    message: str | None = None

    @property
    def display_range(self) -> tuple[int, int] | None:
        """1-indexed ``(start, end)`` range; end exclusive."""
        if self.start_row is None or self.end_row is None:
            return None
        return self.start_row + 1, self.end_row + 1

    @property
    def truncated(self) -> bool:
        return not self.found and self.start_row is not None

    def count(self, verdict: Verdict) -> int:
        return sum(1 for f in self.fields if f.verdict is verdict)

    @property
    def is_valid(self) -> bool:
        return self.found and self.count(Verdict.INVALID) == 0


class ItemStatus(Enum):
    FOUND = "FOUND"
    NOT_FOUND_IN_REFERENCE = "NOT_FOUND_IN_REFERENCE"
    NOT_FOUND_IN_FILE = "NOT_FOUND_IN_FILE"


@dataclass(frozen=True)
class ItemResult:
    """Outcome of comparing one named item with its reference row."""
    name: str
    status: ItemStatus
    row: int | None = None
    sheet: str = ""
    fields: tuple[FieldResult, ...] = ()

    @property
    def is_valid(self) -> bool:
        return self.status is ItemStatus.FOUND and all(f.verdict is Verdict.VALID for f in self.fields)


class RunStatus(Enum):
    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"


@dataclass(frozen=True)
class ValidationRun:
    """Complete output for one uploaded file."""
    file_name: str
    rule_set: str
    sections: tuple[SectionResult, ...] = ()
    cells: tuple[FieldResult, ...] = ()
    items: tuple[ItemResult, ...] = ()
    sheets: tuple[str, ...] = field(default_factory=tuple)
    error: str | None = None

    @property
    def field_results(self) -> list[FieldResult]:
        results: list[FieldResult] = []
        for section in self.sections:
            results.extend(section.fields)
        results.extend(self.cells)
        for item in self.items:
            results.extend(item.fields)
        return results

    def _count(self, verdict: Verdict) -> int:
        return sum(1 for f in self.field_results if f.verdict is verdict)

    @property
    def valid_count(self) -> int:
        return self._count(Verdict.VALID)

    @property
    def invalid_count(self) -> int:
        return self._count(Verdict.INVALID)

    @property
    def warning_count(self) -> int:
        return self._count(Verdict.WARNING)

    @property
    def sections_found(self) -> int:
        return sum(1 for s in self.sections if s.found)

    @property
    def sections_missing(self) -> int:
        return sum(1 for s in self.sections if not s.found)

    @property
    def all_sections_found(self) -> bool:
        return self.sections_missing == 0

    @property
    def items_missing(self) -> int:
        return sum(1 for i in self.items if i.status is not ItemStatus.FOUND)

    @property
    def status(self) -> RunStatus:
        if self.error is not None:
            return RunStatus.ERROR
        if self.invalid_count or self.sections_missing or self.items_missing:
            return RunStatus.FAILED
        return RunStatus.PASSED

    @classmethod
    def failed(cls, file_name: str, rule_set: str, error: str) -> ValidationRun:
        return cls(file_name=file_name, rule_set=rule_set, error=error)
