from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from cbd_check.config.loader import (
    CheckConfig,
    ConfigError,
    apply_sheet_override,
    list_bundled_rulesets,
    load_config,
    load_ruleset,
)
from cbd_check.engine.normalize import display_value
from cbd_check.excel.reader import FileReadError, read_workbook
from cbd_check.logging.error_log import ErrorLogBuffer
from cbd_check.logging.init import enable_debug, log_file_result, log_summary, setup_logging
from cbd_check.models.batch_result import BatchResult
from cbd_check.models.results import ItemStatus, Verdict
from cbd_check.reference.csv_loader import ReferenceDataError
from cbd_check.services.orchestrator import ProcessingError, scan_upload_files, validate_files
from cbd_check.services.report import write_report
from cbd_check.services.summary import render_file_line, render_summary_line

"""CLI entrypoint: ``cbd-check`` / ``python -m cbd_check.cli``.

Flow:
- load ``.env`` then ``config/check.yml`` (or ``$CBD_CONFIG`` / ``--config``)
- load the rule set (bundled name or YAML path)
- validate the given files, or every spreadsheet in ``source_directory``
- print one line per file, then a SUMMARY line

Exit codes: 0 every file passed, 2 at least one file failed or could not be
read, 1 fatal (config, rule set, reference data, missing directory).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_CONFIG_PATH = Path("config/check.yml")
INSPECT_ROWS = 5


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; values override the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="cbd-check", description="Validate buyer cost breakdown spreadsheets")
    p.add_argument("files", nargs="*", type=Path, help="Spreadsheets to validate (default: source_directory)")
    p.add_argument("--config", type=Path, help="Config file (default: $CBD_CONFIG or config/check.yml)")
    p.add_argument("--ruleset", help="Bundled rule set name or rule-set YAML path (overrides config)")
    p.add_argument("--report", type=Path, help="Directory for the JSON report (overrides config)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print sheet names & first rows then exit")
    p.add_argument("--list-rulesets", action="store_true", help="List bundled rule sets then exit")
    return p.parse_args(argv)


def _config_path(args: argparse.Namespace) -> Path:
    if args.config is not None:
        return args.config
    env = os.getenv("CBD_CONFIG")
    return Path(env) if env else DEFAULT_CONFIG_PATH


def _resolve_config(args: argparse.Namespace) -> CheckConfig:
    """Config from file; with explicit files and ``--ruleset`` the file is optional."""
    path = _config_path(args)
    if args.files and args.ruleset and not path.exists():
        return CheckConfig(source_directory=".", ruleset=args.ruleset)
    return load_config(path)


def _inspect_data(files: list[Path]) -> int:
    if not files:
        print("inspect: no spreadsheet files")
        return EXIT_SUCCESS_ALL
    for f in files:
        print(f"FILE: {f.name}")
        try:
            workbook = read_workbook(f)
        except FileReadError as e:
            print(f"  read_error: {e.reason}")
            continue
        for grid in workbook:
            print(f"  SHEET: {grid.sheet_name} rows={grid.row_count} cols={grid.column_count}")
            for idx in range(min(INSPECT_ROWS, grid.row_count)):
                cells = [display_value(v) for v in grid.row(idx)]
                print(f"    {idx + 1}: {cells}")
    return EXIT_SUCCESS_ALL


def _log_results(logger: logging.Logger, result: BatchResult) -> None:
    for run, stat in zip(result.runs, result.file_stats, strict=True):
        log_file_result(stat.status, render_file_line(stat))
        for section in run.sections:
            if not section.found:
                logger.warning(f"  section={section.name} sheet={section.sheet} {section.message}")
        for item in run.items:
            if item.status is not ItemStatus.FOUND:
                logger.warning(f"  item={item.name} status={item.status.value}")
        for f in run.field_results:
            if f.verdict is Verdict.VALID:
                continue
            where = f.address or "-"
            subject = f" item={f.item}" if f.item else ""
            logger.info(
                f"  {f.verdict.value} cell={where} sheet={f.sheet}{subject} field={f.label} "
                f"expected={f.expected} actual={f.actual_display}"
            )


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None -> read sys.argv; [] must stay empty (pytest args must not leak in)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        enable_debug()

    if args.list_rulesets:
        for name in list_bundled_rulesets():
            print(name)
        return EXIT_SUCCESS_ALL

    try:
        cfg = _resolve_config(args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.files:
        files = list(args.files)
    else:
        directory = Path(cfg.source_directory)
        try:
            files = scan_upload_files(directory)
        except ProcessingError as e:
            logger.error(str(e))
            return EXIT_FATAL
        logger.info(f"Validating files from: {directory}")

    if args.inspect_data:
        return _inspect_data(files)

    try:
        rule_set = apply_sheet_override(load_ruleset(args.ruleset or cfg.ruleset), cfg.sheet)
    except ConfigError as e:
        logger.error(f"ruleset: {e}")
        return EXIT_FATAL
    except ReferenceDataError as e:
        logger.error(f"reference data: {e}")
        return EXIT_FATAL

    logs_dir = Path(cfg.logs_directory) if cfg.logs_directory else None
    result = validate_files(files, rule_set, error_log=ErrorLogBuffer(logs_dir))
    _log_results(logger, result)

    report_dir = args.report or (Path(cfg.report_directory) if cfg.report_directory else None)
    if report_dir is not None:
        path = write_report(result, report_dir)
        logger.info(f"report written: {path}")

    log_summary(render_summary_line(result))

    if result.all_passed:
        return EXIT_SUCCESS_ALL
    return EXIT_PARTIAL_FAILURE


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
