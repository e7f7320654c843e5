from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

"""Grid accessor for parsed sheets.

A sheet is held as an immutable tuple-of-tuples indexed ``[row][col]`` (0-based).
Reads outside the populated area return ``None`` (the empty-cell sentinel)
instead of raising, since buyer files routinely have ragged rows.
"""

__all__ = [
    "EMPTY",
    "Grid",
    "Workbook",
    "cell",
    "column_letter_to_index",
    "index_to_column_letter",
    "cell_address",
    "parse_cell_address",
]

EMPTY = None

_LETTERS_RE = re.compile(r"^[A-Z]+$")
_ADDRESS_RE = re.compile(r"^([A-Z]+)([1-9][0-9]*)$")


@dataclass(frozen=True)
class Grid:
    """One sheet's cell values."""

    sheet_name: str
    rows: tuple[tuple[Any, ...], ...] = ()

    @classmethod
    def from_rows(cls, sheet_name: str, rows: Sequence[Sequence[Any]]) -> Grid:
        return cls(sheet_name=sheet_name, rows=tuple(tuple(r) for r in rows))

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return max((len(r) for r in self.rows), default=0)

    def cell(self, row: int, col: int) -> Any:
        return cell(self, row, col)

    def row(self, row: int) -> tuple[Any, ...]:
        if 0 <= row < len(self.rows):
            return self.rows[row]
        return ()


@dataclass(frozen=True)
class Workbook:
    """Ordered mapping of sheet name -> Grid for one uploaded file."""

    name: str
    sheets: dict[str, Grid] = field(default_factory=dict)

    @property
    def sheet_names(self) -> list[str]:
        return list(self.sheets.keys())

    def __iter__(self) -> Iterator[Grid]:
        return iter(self.sheets.values())

    def __len__(self) -> int:
        return len(self.sheets)

    def first(self) -> Grid | None:
        return next(iter(self.sheets.values()), None)

    def last(self) -> Grid | None:
        if not self.sheets:
            return None
        return self.sheets[self.sheet_names[-1]]

    def get(self, sheet_name: str) -> Grid | None:
        """Exact sheet name first, then a trimmed case-insensitive match."""
        if sheet_name in self.sheets:
            return self.sheets[sheet_name]
        wanted = sheet_name.strip().casefold()
        return next((g for n, g in self.sheets.items() if n.strip().casefold() == wanted), None)


def cell(grid: Grid, row: int, col: int) -> Any:
    """Return the value at ``(row, col)`` or ``EMPTY`` when out of bounds."""
    if row < 0 or col < 0 or row >= len(grid.rows):
        return EMPTY
    values = grid.rows[row]
    if col >= len(values):
        return EMPTY
    return values[col]


def column_letter_to_index(letters: str) -> int:
    """Convert a column label to a 0-based index (``A`` -> 0, ``AA`` -> 26)."""
    normalized = letters.strip().upper()
    if not _LETTERS_RE.match(normalized):
        raise ValueError(f"invalid column letters: {letters!r}")
    index = 0
    for ch in normalized:
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index - 1


def index_to_column_letter(index: int) -> str:
    """Convert a 0-based column index to its label (26 -> ``AA``)."""
    if index < 0:
        raise ValueError(f"column index must be >= 0, got {index}")
    letters = ""
    remaining = index + 1
    while remaining > 0:
        remaining, rem = divmod(remaining - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def cell_address(row: int, col: int) -> str:
    """Display address for a 0-based position, e.g. ``(13, 16)`` -> ``Q14``."""
    return f"{index_to_column_letter(col)}{row + 1}"


def parse_cell_address(address: str) -> tuple[int, int]:
    """Parse ``D7`` into the 0-based ``(row, col)`` pair ``(6, 3)``."""
    m = _ADDRESS_RE.match(address.strip().upper())
    if not m:
        raise ValueError(f"invalid cell address: {address!r}")
    return int(m.group(2)) - 1, column_letter_to_index(m.group(1))
