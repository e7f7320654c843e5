from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache

from ..excel.grid import Grid, cell, column_letter_to_index
from ..models.rules import HeaderColumn, Marker, MatchMode
from .normalize import is_empty

"""Section locator.

Sections of a cost breakdown have no fixed row positions; they are found by
scanning one column top-to-bottom for marker text. Callers that need several
sections from one sheet chain the searches (``search_from_row`` = previous
``end_row + 1``) so that a marker substring shared by two sections ("TOTAL")
can only ever match inside the later one.
"""

__all__ = [
    "SectionBounds",
    "marker_matches",
    "find_row",
    "find_section",
    "locate_header_columns",
]


@dataclass(frozen=True)
class SectionBounds:
    """Row range of a located section (0-based).

    ``start_row``: first content row (inclusive).
    ``end_row``: end marker row (exclusive bound of the content).
    ``marker_row``: row of the start marker, None for marker-less sections.
    """
    found: bool
    start_row: int | None = None
    end_row: int | None = None
    marker_row: int | None = None

    @property
    def rows(self) -> range:
        if not self.found or self.start_row is None or self.end_row is None:
            return range(0)
        return range(self.start_row, self.end_row)


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def _cell_text(value: object) -> str:
    if is_empty(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip().casefold()


def marker_matches(marker: Marker, value: object) -> bool:
    """Test a raw cell value against ``marker`` (trimmed, case-folded)."""
    text = _cell_text(value)
    if not text:
        return False
    if marker.mode is MatchMode.PATTERN:
        return _compile(marker.text).search(text) is not None
    target = marker.text.strip().casefold()
    if marker.mode is MatchMode.EXACT:
        return text == target
    if marker.mode is MatchMode.PREFIX:
        return text.startswith(target)
    return target in text


def _scan_column(marker: Marker, default_column: int) -> int:
    index = marker.column_index
    return default_column if index is None else index


def find_row(grid: Grid, column: int, marker: Marker, search_from_row: int = 0) -> int | None:
    """First row at or after ``search_from_row`` whose cell matches ``marker``."""
    col = _scan_column(marker, column)
    for row in range(max(search_from_row, 0), grid.row_count):
        if marker_matches(marker, cell(grid, row, col)):
            return row
    return None


def find_section(
    grid: Grid,
    column: int,
    start: Marker | None,
    end: Marker,
    search_from_row: int = 0,
) -> SectionBounds:
    """Locate the rows between ``start`` and ``end`` markers.

    ``column`` is the default scan column; a marker carrying its own column
    overrides it. Without a ``start`` marker the content begins at
    ``search_from_row``. The end marker is searched strictly after the start
    marker row. If the end marker never appears the section is reported as
    not found while keeping ``start_row`` (truncated section).
    """
    search_from_row = max(search_from_row, 0)
    if start is None:
        marker_row = None
        content_start = search_from_row
    else:
        marker_row = find_row(grid, column, start, search_from_row)
        if marker_row is None:
            return SectionBounds(found=False)
        content_start = marker_row + 1

    end_row = find_row(grid, column, end, content_start)
    if end_row is None:
        return SectionBounds(found=False, start_row=content_start, marker_row=marker_row)
    return SectionBounds(found=True, start_row=content_start, end_row=end_row, marker_row=marker_row)


def locate_header_columns(
    grid: Grid, header_row: int, columns: Sequence[HeaderColumn]
) -> dict[str, int]:
    """Resolve header-keyed columns by scanning one header row.

    A header cell matches when its trimmed, case-folded text equals one of the
    column's labels. Unmatched keys fall back to their default letter. When a
    label occurs more than once the leftmost cell wins.
    """
    resolved: dict[str, int] = {}
    cells = grid.row(header_row)
    for header in columns:
        wanted = {label.strip().casefold() for label in header.labels}
        resolved[header.key] = column_letter_to_index(header.default)
        for idx, value in enumerate(cells):
            if _cell_text(value) in wanted:
                resolved[header.key] = idx
                break
    return resolved
