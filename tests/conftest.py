# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pandas as pd
import pytest

from cbd_check.excel.grid import Grid, Workbook, column_letter_to_index


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


def make_excel(directory: Path, name: str, sheets: dict[str, list[list[object]]]) -> Path:
    """Write a header-less workbook (openpyxl engine) and return its path."""
    p = directory / name
    with pd.ExcelWriter(p, engine="openpyxl") as writer:
        for sheet, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
    return p


def make_grid(rows: list[list[object]], sheet_name: str = "Sheet1") -> Grid:
    return Grid.from_rows(sheet_name, rows)


def make_workbook(sheets: dict[str, list[list[object]]], name: str = "book.xlsx") -> Workbook:
    return Workbook(name=name, sheets={s: make_grid(rows, s) for s, rows in sheets.items()})


def wastage_rows() -> list[list[object]]:
    """Totals-delimited layout: wastage in column Q (index 16), totals in column B."""
    def row(b: object = None, q: object = None) -> list[object]:
        r: list[object] = [None] * 17
        r[1] = b
        r[16] = q
        return r

    return [
        row("ITEM", None),
        row("Shell fabric", 0.05),
        row("Lining", "5%"),
        row("Pocketing", 5),
        row("Mesh", 0.07),
        row("FABRIC TOTAL", None),
        row("Zipper #5", 0.03),
        row("ZIPPER TOTAL", None),
    ]


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
ruleset: mammut
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "check.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def sheet_row(width: int = 20, **cells: object) -> list[object]:
    """One sheet row with values placed by column letter: ``sheet_row(B="SUPPLIER")``."""
    r: list[object] = [None] * width
    for letter, value in cells.items():
        r[column_letter_to_index(letter)] = value
    return r


def mammut_rows(margin: object = 0.4, sewing_price: object = 0.20) -> list[list[object]]:
    """A clean Mammut cost breakdown: header lookups, six totals-delimited sections, CMT block."""
    return [
        sheet_row(A="COST BREAKDOWN", B="SUPPLIER", C="Madison 88"),
        sheet_row(B="CURRENCY", C="USD"),
        sheet_row(B="TARGET SUC", C="NA"),
        sheet_row(N="PROFIT MARGIN", T=margin),
        sheet_row(B="Shell fabric", Q=0.05),
        sheet_row(B="FABRIC TOTAL"),
        sheet_row(B="Zipper #5", Q=0.03),
        sheet_row(B="ZIPPER TOTAL"),
        sheet_row(B="Snap", Q="3%"),
        sheet_row(B="TRIMS TOTAL"),
        sheet_row(B="Heat transfer", Q=3),
        sheet_row(B="GRAPHIC TOTAL"),
        sheet_row(B="Polybag", Q=0.03),
        sheet_row(B="PACKING TOTAL"),
        sheet_row(B="Hangtag string", Q=0.03),
        sheet_row(B="OTHERS TOTAL"),
        sheet_row(E="KNITTING", H=0.05, K=1, L="USD"),
        sheet_row(E="LABELLING", H=0.05, K=1, L="USD"),
        sheet_row(E="SEWING", H=sewing_price, K=1, L="USD"),
        sheet_row(E="WASHING", H=0.17, K=1, L="USD"),
        sheet_row(E="NEATEN/STEAMING/PACKING", H=0.4, K=1, L="USD"),
    ]


@pytest.fixture(autouse=True)
def isolated_config_env(monkeypatch):
    """Keep CBD_CONFIG out of every test, including values a `.env` load writes."""
    # setenv records the original value, so teardown restores it even after
    # load_dotenv(override=True) wrote straight into os.environ
    monkeypatch.setenv("CBD_CONFIG", "")
    monkeypatch.delenv("CBD_CONFIG")
