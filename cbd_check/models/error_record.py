from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON-Lines error log.

File-level problems (unreadable upload, missing named sheet) and structural
findings (a section, lookup label or reference item that could not be
located) are recorded one JSON object per line. ``row=-1`` marks records
that do not point at a specific row.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: uploaded file name
        sheet: sheet name, empty when the workbook could not be read
        row: row number (1-based), -1 when unknown
        error_type: FILE_READ_ERROR, SECTION_NOT_FOUND, LABEL_NOT_FOUND or ITEM_NOT_FOUND
        message: human readable description
    """
    timestamp: str
    file: str
    sheet: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(file: str, sheet: str, row: int, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # no keys beyond the dataclass fields
        return json.dumps(asdict(self), ensure_ascii=False)
