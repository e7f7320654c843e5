from __future__ import annotations

from conftest import make_grid, make_workbook, mammut_rows, sheet_row

from cbd_check.config.loader import load_ruleset
from cbd_check.engine.runner import run, run_workbook
from cbd_check.models.results import ItemStatus, RunStatus, Verdict

"""Bundled brand rule sets applied to hand-built sheets laid out like real buyer files."""


def _verdicts(results) -> list[Verdict]:
    return [f.verdict for f in results]


def test_mammut_clean_sheet_passes():
    result = run(make_grid(mammut_rows(), "CBD"), load_ruleset("mammut"), "m.xlsx")
    assert result.sections_found == 6
    assert result.invalid_count == 0
    assert len(result.cells) == 4 + 5 * 3
    assert result.status is RunStatus.PASSED


def test_mammut_reports_margin_and_cmt_deviations():
    result = run(make_grid(mammut_rows(margin=0.25, sewing_price=0.25), "CBD"), load_ruleset("mammut"))
    bad = {(f.item, f.label) for f in result.cells if f.verdict is Verdict.INVALID}
    assert bad == {("PROFIT MARGIN", "Profit Margin"), ("SEWING", "Price")}
    sewing = next(f for f in result.cells if f.item == "SEWING" and f.label == "Price")
    assert sewing.address == "H19"


def test_mammut_cmt_lookup_needs_anchor():
    rows = [r for r in mammut_rows() if r[1] != "OTHERS TOTAL"]
    result = run(make_grid(rows, "CBD"), load_ruleset("mammut"))
    knitting = [f for f in result.cells if f.item == "KNITTING"]
    assert knitting and all(not f.found for f in knitting)
    assert result.sections[-1].found is False


def prana_rows(lining_wastage: object = None) -> list[list[object]]:
    return [
        sheet_row(10, A="Fabrics"),
        sheet_row(10, A="Shell", G=0.05),
        sheet_row(10, A="Lining", G=lining_wastage),
        sheet_row(10, A="Fabric Subtotal"),
        sheet_row(10, A="Trims, Insulation"),
        sheet_row(10, A="Zip", G=0.03),
        sheet_row(10, A="Trim, Fills Subtotal"),
        sheet_row(10, A="Thread"),
        sheet_row(10, A="Sewing Thread", G=0.03, I=1, J=0.00949),
        sheet_row(10, A="Thread Subtotal"),
        sheet_row(10, A="Labels / Garment Packaging"),
        sheet_row(10, A="Hangtag", G="3%"),
        sheet_row(10, A="Labels/Garment Packaging Subtotal"),
    ]


def test_prana_validates_only_sheets_with_sections():
    wb = make_workbook({"Cover": [["Style", "P-100"]], "CBD": prana_rows()})
    result = run_workbook(wb, load_ruleset("prana"))
    assert result.sheets == ("CBD",)
    assert result.sections_found == 4
    fabrics = result.sections[0]
    # the labelled row without a wastage value still counts
    assert _verdicts(fabrics.fields) == [Verdict.VALID, Verdict.INVALID]
    assert fabrics.fields[1].actual_display == "Empty"
    thread = result.sections[2]
    assert [f.label for f in thread.fields] == ["Wastage", "Total Yield", "Unit Price"]
    assert thread.fields[1].item == "Sewing Thread"
    assert result.invalid_count == 1


def test_prana_multiple_cost_sheets_are_merged():
    wb = make_workbook({"Style A": prana_rows(0.05), "Notes": [["n/a"]], "Style B": prana_rows(0.05)})
    result = run_workbook(wb, load_ruleset("prana"))
    assert result.sheets == ("Style A", "Style B")
    assert len(result.sections) == 8
    assert result.status is RunStatus.PASSED


def ride_store_rows(qty: object = 1) -> list[list[object]]:
    rows = [sheet_row(11) for _ in range(28)]
    rows[0] = sheet_row(11, A="COST BREAKDOWN")
    rows[12] = sheet_row(11, A="supplier:", B="Madison 88 Ltd.")
    rows[13] = sheet_row(11, A="Factory:", B="Madison 88 Ltd.")
    rows[14] = sheet_row(11, A="Country of origin:", B="Indonesia")
    rows[16] = sheet_row(11, A="FABRIC/Main Material")
    rows[17] = sheet_row(11, A="Shell", H=0.05)
    rows[18] = sheet_row(11, F="TOTAL FABRIC")
    rows[19] = sheet_row(11, A="TRIMS & ACCESSORIES")
    rows[20] = sheet_row(11, A="Zip", H=0.03)
    rows[21] = sheet_row(11, F="TOTAL TRIMS & ACCESSORIES")
    rows[22] = sheet_row(11, A="LABELS & PACKAGING")
    rows[23] = sheet_row(11, A="General Packaging", B="Polybag", F="Pcs", G=qty, H=0.03)
    rows[24] = sheet_row(11, F="TOTAL TRIMS")
    rows[26] = sheet_row(11, A="Overhead: Rent, electricity, transport etc.", J=0.6)
    rows[27] = sheet_row(11, A="Profit", D="% of FOB", H=0.0843)
    return rows


def test_ride_store_clean_sheet():
    result = run(make_grid(ride_store_rows()), load_ruleset("ride_store"))
    assert result.sections_found == 3
    assert result.valid_count == 15
    assert result.invalid_count == 0
    supplier = result.cells[1]
    assert (supplier.label, supplier.address) == ("Supplier", "B13")


def test_ride_store_general_packaging_quantity():
    result = run(make_grid(ride_store_rows(qty=2)), load_ruleset("ride_store"))
    bad = [f for f in result.field_results if f.verdict is Verdict.INVALID]
    assert [(f.item, f.label, f.address) for f in bad] == [("General Packaging", "Qty", "G24")]


def foot_asylum_rows(profit_header: str = "Profit %") -> list[list[object]]:
    return [
        sheet_row(16, A="COST SHEET"),
        sheet_row(16, A="Component", D="Main Material", E="Wastage %", F="Overhead Cost",
             G="Testing Cost", H=profit_header, P="Currency"),
        sheet_row(16, A="Fabrics (Shell)"),
        sheet_row(16, A="Shell fabric", D=True, E=0.05, F=0.5, G=0.1, H=0.1, P="USD"),
        sheet_row(16, A="Trims (All)"),
        sheet_row(16, A="Zip", D=False, E="3%", P="USD"),
        sheet_row(16, A="Packaging"),
        sheet_row(16, A="Polybag", D=False, E=0.03, P="USD"),
        sheet_row(16, A="Graphics"),
    ]


def test_foot_asylum_columns_located_by_header():
    result = run(make_grid(foot_asylum_rows()), load_ruleset("foot_asylum"))
    assert [s.found for s in result.sections] == [True, True, True]
    assert result.valid_count == 12
    profit = result.sections[0].fields[-1]
    assert profit.address == "H4"


def test_foot_asylum_unknown_header_falls_back_to_default_column():
    result = run(make_grid(foot_asylum_rows(profit_header="Margin")), load_ruleset("foot_asylum"))
    profit = result.sections[0].fields[-1]
    assert profit.address == "AL4"
    assert profit.verdict is Verdict.INVALID


BURTON_LINES = [
    ("Thread, sewing", "Sewing Thread", "Coats", 1, 0.03, "CONE", 0.012, 0.012),
    ("Beanie Care Content Label", "Care Label", "Avery Dennison", 1, 0.03, "PCS", 0.025, 0.026),
    ("White Polyester Taffeta Tracking Label, 38mm wide x 50mm long", "Tracking Label", "Avery Dennison",
     1, 0.03, "PCS", 0.018, 0.019),
    ("VERTICAL RFID UPC STICKER", "RFID Sticker", "Checkpoint", 1, 0.03, "PCS", 0.085, 0.088),
    ("Glassine Bag", "Glassine Bag", "Madison 88", 1, 0.03, "PCS", 0.021, 0.022),
    ("Polybag Sticker", "Polybag Sticker", "Madison 88", 1, 0.031, "PCS", 0.004, 0.004),
]


def burton_rows() -> list[list[object]]:
    rows = [sheet_row(9, A="Description", C="Material", D="Supplier", E="Qty", F="Wastage")]
    for label, material, supplier, qty, wastage, unit, price, total in BURTON_LINES:
        rows.append(sheet_row(9, A=label, C=material, D=supplier, E=qty, F=wastage, G=unit, H=price, I=total))
    return rows


def test_burton_compares_items_with_reference_on_last_sheet():
    wb = make_workbook({"Summary": [["Style", "B-1"]], "Trims": burton_rows()})
    result = run_workbook(wb, load_ruleset("burton"), "burton.xlsx")
    assert result.sheets == ("Trims",)
    by_name = {i.name: i for i in result.items}
    assert by_name["Sewing Thread - See Vendor Guide"].status is ItemStatus.FOUND
    assert by_name["Sewing Thread - See Vendor Guide"].row == 1
    assert by_name["EA- HSC11"].status is ItemStatus.NOT_FOUND_IN_FILE
    polybag = by_name["Polybag Sticker"]
    wastage = next(f for f in polybag.fields if f.label == "Wastage")
    assert wastage.verdict is Verdict.WARNING
    assert result.warning_count == 1
    assert result.invalid_count == 0
    assert result.status is RunStatus.FAILED


def fox_rows(profit: object = 0.40, thread_wastage: object = 0.03) -> list[list[object]]:
    return [
        sheet_row(12, C="Vendor", D="Madison 88 Ltd."),
        sheet_row(12, C="Factory", D="PT UWU Jump", K="Overhead", L=0.4),
        sheet_row(12, C="COO", D="Indonesia", K="Profit & Others", L=profit),
        sheet_row(12, A="FABRIC"),
        sheet_row(12, B="Shell", E=0.05),
        sheet_row(12, B="Sewing Thread", D=1, E=thread_wastage, H=0.01, I=0.01, J=0),
        sheet_row(12, B="Lining", E="5%"),
        sheet_row(12, H="SUBTOTAL"),
        sheet_row(12, A="Standard Packaging", D=1, E=0.03),
        sheet_row(12, A="LABOR COST", B="Knitting"),
        sheet_row(12, B="Sewing"),
        sheet_row(12, B="Finishing"),
        sheet_row(12, A="OVERHEAD COST", H=0.4),
        sheet_row(12, A="PROFIT COST", H=profit),
    ]


def test_fox_sewing_thread_rows_leave_the_wastage_check():
    result = run(make_grid(fox_rows()), load_ruleset("fox"))
    assert result.status is RunStatus.PASSED
    assert result.valid_count == 19
    fabric = result.sections[0]
    blanket = [f.address for f in fabric.fields if f.item is None]
    assert blanket == ["E5", "E7"]
    thread = [f for f in fabric.fields if f.item == "Sewing Thread"]
    assert [f.label for f in thread] == ["Usage", "Wastage", "COST CIF", "Extended Cost", "% to Total"]


def test_fox_profit_band_and_thread_wastage():
    result = run(make_grid(fox_rows(profit=0.50, thread_wastage=0.05)), load_ruleset("fox"))
    bad = {(f.item, f.label) for f in result.field_results if f.verdict is Verdict.INVALID}
    assert bad == {
        ("PROFIT & OTHERS", "Profit & Others"),
        ("PROFIT COST", "Profit Cost"),
        ("Sewing Thread", "Wastage"),
    }


def cotopaxi_rows(margin: object = "18%", imported_yarn: object = "0.5%") -> list[list[object]]:
    return [
        sheet_row(9, D="VENDOR / COO", E="PT UWU Jump Indonesia"),
        sheet_row(9, D="SUPPLIER CONTACT", E="Madison 88"),
        sheet_row(9, E="Overhead/Margin/Profit %:", G=margin),
        sheet_row(9, A="FABRIC"),
        sheet_row(9, A="Yarn", B="M88 local", I="0.15%"),
        sheet_row(9, A="Yarn", B="Imported", I=imported_yarn),
        sheet_row(9, A="Fabric Freight", I=0.004),
        sheet_row(9, D="Total Fabric Yardage"),
        sheet_row(9, A="TRIMS"),
        sheet_row(9, A="Zipper", B="YKK", I=0.00015),
        sheet_row(9, A="Freight", B="Local freight", I=0.00012),
        sheet_row(9, G="Total Trims Cost"),
        sheet_row(9, D="General Packaging", F=1, I=0.0001),
    ]


def test_cotopaxi_reads_the_blank_cost_sheet():
    wb = make_workbook({"Summary": [["Style", "C-1"]], "Blank Cost Sheet": cotopaxi_rows()})
    result = run_workbook(wb, load_ruleset("cotopaxi"), "cotopaxi.xlsx")
    assert result.sheets == ("Blank Cost Sheet",)
    assert result.valid_count == 10
    assert result.status is RunStatus.PASSED
    trims = result.sections[1]
    assert [(f.label, f.address) for f in trims.fields] == [("Trim Rate", "I10"), ("Local/Freight Rate", "I11")]


def test_cotopaxi_margin_and_yarn_rate_outside_their_bands():
    wb = make_workbook({"Blank Cost Sheet": cotopaxi_rows(margin=0.25, imported_yarn="0.6%")})
    result = run_workbook(wb, load_ruleset("cotopaxi"))
    bad = {(f.item, f.label) for f in result.field_results if f.verdict is Verdict.INVALID}
    assert bad == {("OVERHEAD/MARGIN/PROFIT %", "Overhead/Margin/Profit %"), ("Yarn", "Yarn Rate")}


def test_cotopaxi_without_cost_sheet_is_a_run_error():
    wb = make_workbook({"Summary": cotopaxi_rows()})
    assert run_workbook(wb, load_ruleset("cotopaxi")).status is RunStatus.ERROR


def columbia_rows(overhead: object = 0.355, profit: object = 0.045) -> list[list[object]]:
    rows = [sheet_row(15) for _ in range(22)]
    rows[18] = sheet_row(15, M="85%")
    rows[20] = sheet_row(15, O=overhead)
    rows[21] = sheet_row(15, M=profit)
    return rows


def test_columbia_overhead_and_profit_ranges():
    clean = run(make_grid(columbia_rows()), load_ruleset("columbia"))
    assert clean.valid_count == 3
    # a whole-number 4.5 reads as 4.5%
    assert run(make_grid(columbia_rows(profit=4.5)), load_ruleset("columbia")).invalid_count == 0
    result = run(make_grid(columbia_rows(overhead=0.37, profit="5%")), load_ruleset("columbia"))
    assert [f.address for f in result.cells if f.verdict is Verdict.INVALID] == ["O21", "M22"]
    assert result.cells[2].expected == "4% - 4.99%"


def tnf_rows(wages: object = 1.75, smv: object = 12.5) -> list[list[object]]:
    rows = [sheet_row(18) for _ in range(11)]
    rows[4] = sheet_row(18, R=10)
    rows[6] = sheet_row(18, K=smv)
    rows[7] = sheet_row(18, K="50%")
    rows[8] = sheet_row(18, K=wages)
    rows[10] = sheet_row(18, K=0.7)
    return rows


def test_tnf_costing_cells():
    assert run(make_grid(tnf_rows()), load_ruleset("tnf")).valid_count == 5
    result = run(make_grid(tnf_rows(wages=1.8, smv=None)), load_ruleset("tnf"))
    assert [f.label for f in result.cells if f.verdict is Verdict.INVALID] == [
        "Standard Minute Value",
        "Hourly Wages",
    ]
