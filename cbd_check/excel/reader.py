from __future__ import annotations

import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from .grid import Grid, Workbook

"""Spreadsheet reader (boundary to pandas / openpyxl).

Each sheet is parsed without a header row so that row indexes in the Grid
match the sheet's own row numbers (row 0 == spreadsheet row 1). NaN cells are
converted to ``None`` and numpy scalars to plain Python values.
"""

__all__ = [
    "FileReadError",
    "Upload",
    "read_workbook",
    "frame_to_grid",
]

logger = logging.getLogger(__name__)

# openpyxl formats only; legacy .xls would need xlrd
SUPPORTED_SUFFIXES = (".xlsx", ".xlsm")
# only blank cells become NaN; literal "NA" / "N/A" stay text and dtype=object
# keeps native booleans from being coerced to 1.0 in bool+blank columns
BLANK_NA_VALUES = [""]


class FileReadError(Exception):
    """Raised when uploaded bytes cannot be loaded as a spreadsheet."""

    def __init__(self, file_name: str, reason: str) -> None:
        super().__init__(f"{file_name}: {reason}")
        self.file_name = file_name
        self.reason = reason


@dataclass(frozen=True)
class Upload:
    """An uploaded file: display name plus raw bytes."""

    name: str
    content: bytes

    @classmethod
    def from_path(cls, path: Path) -> Upload:
        try:
            return cls(name=path.name, content=path.read_bytes())
        except OSError as e:
            raise FileReadError(path.name, f"cannot read file: {e}") from e


def frame_to_grid(df: pd.DataFrame, sheet_name: str) -> Grid:
    """Convert a header-less DataFrame into an immutable Grid."""
    if df.empty:
        return Grid(sheet_name=sheet_name)
    # astype(object) turns numpy scalars into Python scalars
    cleaned = df.astype(object).where(pd.notna(df), None)
    rows: list[list[Any]] = cleaned.values.tolist()
    return Grid.from_rows(sheet_name, rows)


def read_workbook(
    source: Upload | Path, target_sheets: Iterable[str] | None = None
) -> Workbook:
    """Parse an uploaded file into a Workbook of Grids.

    Parameters
    ----------
    source: Upload (name + bytes) or a filesystem path
    target_sheets: restrict parsing to these sheet names (None = all sheets)

    Raises
    ------
    FileReadError: the content is empty, corrupt, or not a spreadsheet
    """
    upload = Upload.from_path(source) if isinstance(source, Path) else source
    if not upload.content:
        raise FileReadError(upload.name, "file is empty")
    wanted = set(target_sheets) if target_sheets is not None else None

    try:
        xls = pd.ExcelFile(io.BytesIO(upload.content))
    except Exception as e:
        raise FileReadError(upload.name, f"not a readable spreadsheet ({e})") from e

    sheets: dict[str, Grid] = {}
    with xls:
        for name in xls.sheet_names:
            if wanted is not None and str(name) not in wanted:
                continue
            try:
                df = xls.parse(name, header=None, keep_default_na=False, na_values=BLANK_NA_VALUES, dtype=object)
            except Exception as e:
                raise FileReadError(upload.name, f"sheet '{name}' could not be parsed ({e})") from e
            sheets[str(name)] = frame_to_grid(df, str(name))
            logger.debug("file=%s sheet=%s rows=%d", upload.name, name, len(df))

    return Workbook(name=upload.name, sheets=sheets)
