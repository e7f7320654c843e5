from __future__ import annotations

from ..models.batch_result import BatchResult, FileStat

"""Summary line rendering.

Format of the batch line (one per run, logged at SUMMARY level)::

    SUMMARY files=3 passed=1 failed=1 errors=1 invalid=4 warnings=1 elapsed_sec=0.42 ruleset=mammut

and of the per-file line::

    file=a.xlsx status=failed valid=10 invalid=2 warnings=0 sections_missing=1
"""

__all__ = [
    "format_elapsed",
    "render_summary_line",
    "render_file_line",
]


def format_elapsed(seconds: float) -> str:
    """Plain decimal rendering without scientific notation."""
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.2f}".rstrip("0").rstrip(".")


def render_summary_line(result: BatchResult) -> str:
    return (
        f"SUMMARY files={result.total_files} "
        f"passed={result.passed_files} "
        f"failed={result.failed_files} "
        f"errors={result.error_files} "
        f"invalid={result.total_invalid} "
        f"warnings={result.total_warnings} "
        f"elapsed_sec={format_elapsed(result.elapsed_seconds)} "
        f"ruleset={result.rule_set}"
    )


def render_file_line(stat: FileStat) -> str:
    line = (
        f"file={stat.file_name} status={stat.status.value} "
        f"valid={stat.valid} invalid={stat.invalid} warnings={stat.warnings} "
        f"sections_missing={stat.sections_missing}"
    )
    if stat.error:
        line += f" error={stat.error}"
    return line
