from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..engine.runner import run_workbook
from ..excel.reader import SUPPORTED_SUFFIXES, FileReadError, Upload, read_workbook
from ..logging.error_log import ErrorLogBuffer
from ..models.batch_result import BatchResult, FileStat
from ..models.results import RunStatus, ValidationRun
from ..models.rules import RuleSet
from .progress import ProgressTracker

"""Batch orchestration.

Each upload is parsed and validated on its own: a file that cannot be read
becomes an ERROR run and the batch moves on. Nothing is shared between files
except the rule set, which is immutable.
"""

__all__ = [
    "ProcessingError",
    "scan_upload_files",
    "validate_upload",
    "validate_files",
]

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Fatal batch-level error (e.g. the source directory is missing)."""


def scan_upload_files(directory: Path) -> list[Path]:
    """Spreadsheet files directly inside ``directory`` (non-recursive), sorted by name.

    Raises:
        ProcessingError: directory missing or unreadable
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    try:
        return sorted(
            p
            for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES and not p.name.startswith("~$")
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def validate_upload(upload: Upload, rule_set: RuleSet) -> ValidationRun:
    """Parse one upload and validate it; read failures become an ERROR run."""
    try:
        workbook = read_workbook(upload)
    except FileReadError as e:
        logger.error("file=%s %s", upload.name, e.reason)
        return ValidationRun.failed(upload.name, rule_set.name, e.reason)
    return run_workbook(workbook, rule_set, upload.name)


def _as_upload(source: Upload | Path) -> Upload:
    if isinstance(source, Upload):
        return source
    return Upload.from_path(source)


def validate_files(
    sources: Iterable[Upload | Path],
    rule_set: RuleSet,
    error_log: ErrorLogBuffer | None = None,
) -> BatchResult:
    """Validate every source with ``rule_set``, sequentially.

    ``sources`` may mix in-memory uploads and file paths. Error records are
    flushed to the JSON-Lines error log at the end of the batch.
    """
    items = list(sources)
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    start_time = datetime.now(UTC)
    runs: list[ValidationRun] = []
    stats: list[FileStat] = []

    with error_log, ProgressTracker(len(items)) as progress:
        for source in items:
            name = source.name
            progress.start_file(name)
            file_start = datetime.now(UTC)
            try:
                run = validate_upload(_as_upload(source), rule_set)
            except FileReadError as e:
                logger.error("file=%s %s", name, e.reason)
                run = ValidationRun.failed(name, rule_set.name, e.reason)
            elapsed = (datetime.now(UTC) - file_start).total_seconds()

            error_log.record_run(run)
            runs.append(run)
            stats.append(
                FileStat(
                    file_name=name,
                    status=run.status,
                    valid=run.valid_count,
                    invalid=run.invalid_count,
                    warnings=run.warning_count,
                    sections_missing=run.sections_missing,
                    elapsed_seconds=elapsed,
                    error=run.error,
                )
            )
            progress.finish_file(
                passed=sum(1 for s in stats if s.status is RunStatus.PASSED),
                invalid=sum(s.invalid for s in stats),
            )

    if error_log.last_path is not None:
        logger.info("error log written: %s", error_log.last_path)

    end_time = datetime.now(UTC)
    return BatchResult(
        rule_set=rule_set.name,
        runs=tuple(runs),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=tuple(stats),
    )
