from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..excel.grid import column_letter_to_index, parse_cell_address
from ..reference.csv_loader import ReferenceRow

"""Rule-table models.

A brand is described purely as data: which sections to locate, which columns
to check inside them, which fixed cells or labelled rows to check, and what
value each check expects. The engine in ``cbd_check.engine`` interprets these
tables; nothing here touches a spreadsheet.
"""

__all__ = [
    "MatchMode",
    "Marker",
    "ExpectKind",
    "Expectation",
    "FieldRule",
    "ItemOverride",
    "SectionRule",
    "CellRule",
    "LookupRule",
    "HeaderColumn",
    "ReferenceItem",
    "ReferenceField",
    "ReferenceItemRule",
    "SheetPolicy",
    "RuleSet",
]


class MatchMode(Enum):
    """How a marker is compared with a trimmed, case-folded cell value."""
    EXACT = "exact"
    PREFIX = "prefix"
    CONTAINS = "contains"
    PATTERN = "pattern"  # case-insensitive regular expression (re.search)


@dataclass(frozen=True)
class Marker:
    """Marker text searched for in one column.

    ``column`` is optional; when omitted the owning rule's scan column is used.
    """
    text: str
    mode: MatchMode = MatchMode.CONTAINS
    column: str | None = None

    @property
    def column_index(self) -> int | None:
        return column_letter_to_index(self.column) if self.column else None

    def describe(self) -> str:
        where = f" in column {self.column}" if self.column else ""
        return f"{self.mode.value} '{self.text}'{where}"


class ExpectKind(Enum):
    TEXT = "text"
    NUMBER = "number"
    PERCENTAGE = "percentage"
    BOOLEAN = "boolean"
    RANGE = "range"
    PRESENT = "present"


def _fmt(number: float) -> str:
    return f"{number:g}"


@dataclass(frozen=True)
class Expectation:
    """Expected value of a field.

    Percentages are stored as fractions (5% -> 0.05). ``decimals`` is the
    precision both sides are rounded to before an equality test.
    """
    kind: ExpectKind
    value: Any = None
    minimum: float | None = None
    maximum: float | None = None
    decimals: int = 3
    percent: bool = False  # range bounds/values read as percentages
    display: str | None = None

    @classmethod
    def text(cls, value: str, display: str | None = None) -> Expectation:
        return cls(ExpectKind.TEXT, value=value, display=display)

    @classmethod
    def number(cls, value: float | None, decimals: int = 3, display: str | None = None) -> Expectation:
        return cls(ExpectKind.NUMBER, value=value, decimals=decimals, display=display)

    @classmethod
    def percentage(cls, value: float, decimals: int = 3, display: str | None = None) -> Expectation:
        return cls(ExpectKind.PERCENTAGE, value=value, decimals=decimals, display=display)

    @classmethod
    def boolean(cls, value: bool) -> Expectation:
        return cls(ExpectKind.BOOLEAN, value=value)

    @classmethod
    def range(cls, minimum: float, maximum: float, percent: bool = False) -> Expectation:
        if minimum > maximum:
            raise ValueError(f"range minimum {minimum} exceeds maximum {maximum}")
        return cls(ExpectKind.RANGE, minimum=minimum, maximum=maximum, percent=percent)

    @classmethod
    def present(cls) -> Expectation:
        return cls(ExpectKind.PRESENT)

    def describe(self) -> str:
        if self.display is not None:
            return self.display
        if self.kind is ExpectKind.TEXT:
            return str(self.value)
        if self.kind is ExpectKind.NUMBER:
            if self.value is None:
                return "n/a"
            return f"{self.value:.{self.decimals}f}"
        if self.kind is ExpectKind.PERCENTAGE:
            return f"{_fmt(self.value * 100)}%"
        if self.kind is ExpectKind.BOOLEAN:
            return "TRUE" if self.value else "FALSE"
        if self.kind is ExpectKind.RANGE:
            if self.percent:
                return f"{_fmt(self.minimum * 100)}% - {_fmt(self.maximum * 100)}%"
            return f"{_fmt(self.minimum)} - {_fmt(self.maximum)}"
        return "any value"


@dataclass(frozen=True)
class FieldRule:
    """One checked column.

    Exactly one of ``column`` (letter) or ``header`` (key of a header-located
    column, see ``HeaderColumn``) is set. ``epsilon`` enables the WARNING
    verdict for a deviation of exactly that size.
    """
    label: str
    expect: Expectation
    column: str | None = None
    header: str | None = None
    epsilon: float | None = None

    def __post_init__(self) -> None:
        if (self.column is None) == (self.header is None):
            raise ValueError(f"field '{self.label}' needs exactly one of column/header")
        if self.epsilon is not None and self.expect.kind not in (ExpectKind.NUMBER, ExpectKind.PERCENTAGE):
            raise ValueError(f"field '{self.label}': epsilon only applies to number/percentage rules")

    @property
    def column_index(self) -> int | None:
        return column_letter_to_index(self.column) if self.column else None


@dataclass(frozen=True)
class ItemOverride:
    """Extra checks for section rows whose label matches ``name``.

    With ``exclude_from_section`` the matching rows get only these checks and
    are left out of the section-wide fields.
    """
    name: str
    fields: tuple[FieldRule, ...]
    mode: MatchMode = MatchMode.EXACT
    exclude_from_section: bool = False


@dataclass(frozen=True)
class SectionRule:
    """A block of rows between a start marker and an end marker.

    Without a ``start`` marker the section begins where the previous section
    ended (totals-delimited layouts). ``column`` is the default scan column
    for both markers.
    """
    name: str
    end: Marker
    fields: tuple[FieldRule, ...]
    start: Marker | None = None
    column: str = "A"
    label_column: str | None = None
    count_labelled_rows: bool = False
    items: tuple[ItemOverride, ...] = ()

    def __post_init__(self) -> None:
        if self.count_labelled_rows and self.label_column is None:
            raise ValueError(f"section '{self.name}': count_labelled_rows requires label_column")
        if self.items and self.label_column is None:
            raise ValueError(f"section '{self.name}': item overrides require label_column")

    @property
    def column_index(self) -> int:
        return column_letter_to_index(self.column)

    @property
    def label_column_index(self) -> int | None:
        return column_letter_to_index(self.label_column) if self.label_column else None


@dataclass(frozen=True)
class CellRule:
    """A check on one fixed cell address, e.g. ``D7``."""
    label: str
    address: str
    expect: Expectation
    epsilon: float | None = None

    @property
    def position(self) -> tuple[int, int]:
        return parse_cell_address(self.address)

    @property
    def field_rule(self) -> FieldRule:
        col = self.address.strip().upper().rstrip("0123456789")
        return FieldRule(label=self.label, expect=self.expect, column=col, epsilon=self.epsilon)


@dataclass(frozen=True)
class LookupRule:
    """Find the first row whose ``find`` column matches, then check its cells.

    ``after`` restricts the search to rows below an anchor marker.
    """
    label: str
    find: Marker
    fields: tuple[FieldRule, ...]
    after: Marker | None = None

    def __post_init__(self) -> None:
        if self.find.column is None:
            raise ValueError(f"lookup '{self.label}': find marker needs a column")


@dataclass(frozen=True)
class HeaderColumn:
    """A column located by its header text, with a fallback letter."""
    key: str
    labels: tuple[str, ...]
    default: str


@dataclass(frozen=True)
class ReferenceItem:
    name: str
    keywords: tuple[str, ...] = ()


@dataclass(frozen=True)
class ReferenceField:
    """Grid column compared against one field of the reference row."""
    label: str
    column: str
    reference: str
    kind: ExpectKind = ExpectKind.TEXT
    decimals: int = 3
    epsilon: float | None = None

    @property
    def column_index(self) -> int:
        return column_letter_to_index(self.column)


@dataclass(frozen=True)
class ReferenceItemRule:
    """Named items compared field by field with rows of a reference CSV."""
    label_column: str
    items: tuple[ReferenceItem, ...]
    fields: tuple[ReferenceField, ...]
    rows: tuple[ReferenceRow, ...] = ()
    description_field: str = "description"

    @property
    def label_column_index(self) -> int:
        return column_letter_to_index(self.label_column)


class SheetPolicy(Enum):
    FIRST = "first"
    LAST = "last"
    ALL = "all"
    NAMED = "named"


@dataclass(frozen=True)
class RuleSet:
    """Complete configuration for one brand."""
    name: str
    sheets: SheetPolicy = SheetPolicy.FIRST
    sheet_name: str | None = None
    sections: tuple[SectionRule, ...] = ()
    cells: tuple[CellRule, ...] = ()
    lookups: tuple[LookupRule, ...] = ()
    header_row_index: int | None = None
    header_columns: tuple[HeaderColumn, ...] = ()
    reference: ReferenceItemRule | None = None
    description: str = ""

    def __post_init__(self) -> None:
        if self.sheets is SheetPolicy.NAMED and not self.sheet_name:
            raise ValueError(f"rule set '{self.name}': named sheet policy requires sheet_name")
        if self.header_columns and self.header_row_index is None:
            raise ValueError(f"rule set '{self.name}': header columns require a header row")
        known = {h.key for h in self.header_columns}
        for section in self.sections:
            for rule in _all_fields(section):
                if rule.header is not None and rule.header not in known:
                    raise ValueError(
                        f"rule set '{self.name}': field '{rule.label}' refers to unknown header '{rule.header}'"
                    )


def _all_fields(section: SectionRule) -> list[FieldRule]:
    rules = list(section.fields)
    for item in section.items:
        rules.extend(item.fields)
    return rules
