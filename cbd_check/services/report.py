from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..models.batch_result import BatchResult
from ..models.results import FieldResult, ItemResult, SectionResult, ValidationRun

"""Structured JSON report.

The report mirrors the result models one-to-one. Cell values are rendered
with the same display rules as the terminal output ("Empty", "Not found in
file", integral floats without ``.0``), so the JSON can be shown as-is.
"""

__all__ = [
    "build_run_report",
    "build_report",
    "write_report",
]

TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


def _field(result: FieldResult) -> dict[str, Any]:
    return {
        "label": result.label,
        "item": result.item,
        "sheet": result.sheet,
        "cell": result.address or None,
        "row": result.display_row,
        "expected": result.expected,
        "actual": result.actual_display,
        "verdict": result.verdict.value,
    }


def _section(result: SectionResult) -> dict[str, Any]:
    rng = result.display_range
    return {
        "name": result.name,
        "sheet": result.sheet,
        "found": result.found,
        "rows": list(rng) if rng is not None else None,
        "message": result.message,
        "fields": [_field(f) for f in result.fields],
    }


def _item(result: ItemResult) -> dict[str, Any]:
    return {
        "name": result.name,
        "status": result.status.value,
        "row": result.row + 1 if result.row is not None else None,
        "fields": [_field(f) for f in result.fields],
    }


def build_run_report(run: ValidationRun) -> dict[str, Any]:
    return {
        "file": run.file_name,
        "status": run.status.value,
        "error": run.error,
        "sheets": list(run.sheets),
        "counts": {
            "valid": run.valid_count,
            "invalid": run.invalid_count,
            "warning": run.warning_count,
            "sections_missing": run.sections_missing,
            "items_missing": run.items_missing,
        },
        "sections": [_section(s) for s in run.sections],
        "cells": [_field(c) for c in run.cells],
        "items": [_item(i) for i in run.items],
    }


def build_report(result: BatchResult) -> dict[str, Any]:
    return {
        "ruleset": result.rule_set,
        "started_at": result.start_time.isoformat().replace("+00:00", "Z"),
        "elapsed_seconds": result.elapsed_seconds,
        "files": {
            "total": result.total_files,
            "passed": result.passed_files,
            "failed": result.failed_files,
            "errors": result.error_files,
        },
        "runs": [build_run_report(r) for r in result.runs],
    }


def write_report(result: BatchResult, directory: Path) -> Path:
    """Write ``report-<ruleset>-YYYYMMDD-HHMMSS.json`` (UTC) into ``directory``."""
    directory.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
    path = directory / f"report-{result.rule_set}-{stamp}.json"
    path.write_text(json.dumps(build_report(result), ensure_ascii=False, indent=2), encoding="utf-8")
    return path
