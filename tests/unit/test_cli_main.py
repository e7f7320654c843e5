from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

from conftest import make_excel, mammut_rows, wastage_rows

from cbd_check.cli.__main__ import main as cli_main
from cbd_check.config.loader import list_bundled_rulesets
from cbd_check.logging.init import reset_logging


def test_list_rulesets(temp_workdir: Path, capsys):
    reset_logging()
    code = cli_main(["--list-rulesets"])
    out = capsys.readouterr().out.split()
    assert code == 0
    assert out == list_bundled_rulesets()
    assert "mammut" in out


def test_inspect_data_prints_first_rows(temp_workdir: Path, write_config: Path, capsys):
    reset_logging()
    make_excel(temp_workdir / "data", "sample.xlsx", {"CBD": wastage_rows(), "Cover": [["Style", "X1"]]})
    (temp_workdir / "data" / "broken.xlsx").write_bytes(b"")

    with patch("cbd_check.cli.__main__.validate_files") as validate:
        code = cli_main(["--inspect-data"])

    out = capsys.readouterr().out
    assert code == 0
    validate.assert_not_called()
    assert "FILE: broken.xlsx" in out
    assert "read_error: file is empty" in out
    assert "SHEET: CBD rows=8 " in out
    assert "SHEET: Cover rows=1 cols=2" in out
    assert "    2: " in out and "'Shell fabric'" in out
    assert "    6: " not in out


def test_debug_flag_enables_debug_lines(temp_workdir: Path, write_config: Path, capsys):
    reset_logging()
    make_excel(temp_workdir / "data", "ok.xlsx", {"CBD": mammut_rows()})

    code = cli_main(["--debug"])

    out = capsys.readouterr().out
    assert code == 0
    assert "DEBUG debug mode enabled" in out
    assert "DEBUG rule set mammut:" in out
    reset_logging()


def test_config_path_from_environment(temp_workdir: Path, monkeypatch, capsys):
    reset_logging()
    alt = temp_workdir / "alt.yml"
    alt.write_text("source_directory: ./inbox\nruleset: mammut\n", encoding="utf-8")
    (temp_workdir / "inbox").mkdir()
    monkeypatch.setenv("CBD_CONFIG", str(alt))

    code = cli_main([])

    assert code == 0
    assert "Validating files from: inbox" in capsys.readouterr().out


def test_dotenv_file_sets_config_path(temp_workdir: Path, capsys):
    reset_logging()
    (temp_workdir / "other.yml").write_text("source_directory: ./missing\nruleset: mammut\n", encoding="utf-8")
    (temp_workdir / ".env").write_text("CBD_CONFIG=other.yml\n", encoding="utf-8")

    code = cli_main([])

    assert code == 1
    assert "Directory not found: missing" in capsys.readouterr().out


def test_config_env_is_clean_after_dotenv_run(temp_workdir: Path):
    # runs right after test_dotenv_file_sets_config_path
    assert "CBD_CONFIG" not in os.environ


def test_ruleset_flag_overrides_config(temp_workdir: Path, write_config: Path, capsys):
    reset_logging()
    make_excel(temp_workdir / "data", "ok.xlsx", {"CBD": mammut_rows()})

    code = cli_main(["--ruleset", "prana"])

    out = capsys.readouterr().out
    assert code == 2
    assert "ruleset=prana" in out
    assert "section=Fabrics sheet=CBD not found in file" in out


def test_sheet_override_from_config(temp_workdir: Path, capsys):
    reset_logging()
    (temp_workdir / "config" / "check.yml").write_text(
        "source_directory: ./data\nruleset: mammut\nsheet: Costing\n", encoding="utf-8"
    )
    make_excel(temp_workdir / "data", "ok.xlsx", {"Cover": [["x"]], "Costing": mammut_rows()})
    make_excel(temp_workdir / "data", "other.xlsx", {"Cover": [["x"]]})

    code = cli_main([])

    out = capsys.readouterr().out
    assert code == 2
    assert "file=ok.xlsx status=passed" in out
    assert "file=other.xlsx status=error" in out
    assert "error=sheet 'Costing' not found" in out
