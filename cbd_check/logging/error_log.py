from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from types import TracebackType

from ..models.error_record import ErrorRecord
from ..models.results import ItemStatus, ValidationRun

"""JSON-Lines error log for a validation batch.

Only structural findings are logged here: uploads that could not be read,
sections whose markers were missing, lookup labels and reference items that
could not be located. Ordinary INVALID cell values belong to the report, not
the error log.

Used as a context manager, the buffer flushes on exit so a batch interrupted by
an exception still leaves the records gathered so far on disk::

    with ErrorLogBuffer(logs_dir) as error_log:
        for run in runs:
            error_log.record_run(run)
    error_log.last_path  # None when nothing was recorded
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "FILE_READ_ERROR",
    "SECTION_NOT_FOUND",
    "LABEL_NOT_FOUND",
    "ITEM_NOT_FOUND",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

FILE_READ_ERROR = "FILE_READ_ERROR"
SECTION_NOT_FOUND = "SECTION_NOT_FOUND"
LABEL_NOT_FOUND = "LABEL_NOT_FOUND"
ITEM_NOT_FOUND = "ITEM_NOT_FOUND"


class ErrorLogBuffer:
    """Collects error records for one batch; ``flush`` appends them as JSON Lines.

    The log file is named once per buffer (``errors-YYYYMMDD-HHMMSS.log``, UTC)
    and created only when the first record is written. Not thread safe; files
    are validated sequentially.
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR
        self.last_path: Path | None = None

    def __enter__(self) -> ErrorLogBuffer:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.last_path = self.flush()

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def record_file_error(self, file: str, message: str, sheet: str = "") -> None:
        self.append(ErrorRecord.create(file=file, sheet=sheet, row=-1, error_type=FILE_READ_ERROR, message=message))

    def record_run(self, run: ValidationRun) -> int:
        """Record the structural findings of one validated file.

        An ERROR run yields a single FILE_READ_ERROR. Otherwise every missing
        section, every lookup label that never appeared and every reference
        item that could not be matched yields one record. Returns the number
        of records added.
        """
        before = len(self._records)
        if run.error is not None:
            self.record_file_error(run.file_name, run.error)
            return 1

        for section in run.sections:
            if section.found:
                continue
            row = section.marker_row + 1 if section.marker_row is not None else -1
            self.append(
                ErrorRecord.create(
                    file=run.file_name,
                    sheet=section.sheet,
                    row=row,
                    error_type=SECTION_NOT_FOUND,
                    message=f"{section.name}: {section.message}",
                )
            )

        # one record per missing lookup, not per checked field
        missing_labels: dict[tuple[str, str], None] = {}
        for result in run.cells:
            if not result.found:
                missing_labels[(result.sheet, result.item or result.label)] = None
        for sheet, label in missing_labels:
            self.append(
                ErrorRecord.create(
                    file=run.file_name,
                    sheet=sheet,
                    row=-1,
                    error_type=LABEL_NOT_FOUND,
                    message=f"{label}: not found in file",
                )
            )

        for item in run.items:
            if item.status is ItemStatus.FOUND:
                continue
            where = "file" if item.status is ItemStatus.NOT_FOUND_IN_FILE else "reference data"
            self.append(
                ErrorRecord.create(
                    file=run.file_name,
                    sheet=item.sheet,
                    row=-1,
                    error_type=ITEM_NOT_FOUND,
                    message=f"{item.name}: not found in {where}",
                )
            )
        return len(self._records) - before

    def flush(self) -> Path | None:
        """Append buffered records to the log file; None when nothing was buffered."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
