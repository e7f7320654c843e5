from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

"""Reference-data CSV adapter.

Reference sheets (e.g. a brand's cost breakdown) are exported as plain CSV
whose first field is a free-text description. Descriptions may themselves
contain commas and are not quoted, so a line that splits into more fields
than expected has its leading parts joined back into the description.
"""

__all__ = [
    "ReferenceDataError",
    "ReferenceRow",
    "parse_reference_csv",
    "load_reference_csv",
]

logger = logging.getLogger(__name__)


class ReferenceDataError(Exception):
    """Raised when a brand's reference values cannot be loaded."""


@dataclass(frozen=True)
class ReferenceRow:
    """One reference line as an ordered field-name -> text mapping."""
    values: tuple[tuple[str, str], ...]

    def get(self, name: str, default: str = "") -> str:
        for key, value in self.values:
            if key == name:
                return value
        return default

    def as_dict(self) -> dict[str, str]:
        return dict(self.values)


def _split_line(line: str, field_count: int) -> list[str]:
    parts = [p.strip() for p in line.split(",")]
    if len(parts) > field_count:
        extra = len(parts) - (field_count - 1)
        parts = [", ".join(parts[:extra])] + parts[extra:]
    elif len(parts) < field_count:
        parts = parts + [""] * (field_count - len(parts))
    return parts


def parse_reference_csv(text: str, field_names: Sequence[str]) -> list[ReferenceRow]:
    """Split CSV text into rows of ``field_names``.

    Blank lines are ignored. Short lines are padded with empty strings.
    """
    if not field_names:
        raise ReferenceDataError("reference field list is empty")
    rows: list[ReferenceRow] = []
    for line in text.strip().splitlines():
        if not line.strip():
            continue
        parts = _split_line(line, len(field_names))
        rows.append(ReferenceRow(values=tuple(zip(field_names, parts, strict=True))))
    return rows


def load_reference_csv(path: Path, field_names: Sequence[str]) -> list[ReferenceRow]:
    """Load reference rows from ``path``.

    Raises:
        ReferenceDataError: file missing, unreadable, or without any row
    """
    if not path.exists():
        raise ReferenceDataError(f"reference file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise ReferenceDataError(f"cannot read reference file {path}: {e}") from e
    rows = parse_reference_csv(text, field_names)
    if not rows:
        raise ReferenceDataError(f"reference file has no rows: {path}")
    logger.debug("loaded %d reference rows from %s", len(rows), path)
    return rows
