from __future__ import annotations

import logging

from ..excel.grid import Grid, Workbook, cell
from ..models.results import FieldResult, ItemResult, ItemStatus, SectionResult, ValidationRun
from ..models.rules import (
    CellRule,
    ExpectKind,
    Expectation,
    FieldRule,
    ItemOverride,
    LookupRule,
    Marker,
    ReferenceField,
    ReferenceItemRule,
    RuleSet,
    SectionRule,
    SheetPolicy,
)
from ..reference.csv_loader import ReferenceRow
from .evaluator import evaluate, evaluate_not_found
from .locator import find_row, find_section, locate_header_columns, marker_matches
from .matching import item_matches
from .normalize import display_value, is_empty, normalize_numeric

"""Validation runner: applies a RuleSet to parsed sheets.

Sections are located in declared order and each search starts right after the
previous section's end marker. The cursor is never reset to row 0, so rows
cannot be attributed to two sections even when their markers share text.
"""

__all__ = [
    "run",
    "run_workbook",
]

logger = logging.getLogger(__name__)


def _field_column(rule: FieldRule, header_map: dict[str, int]) -> int:
    if rule.header is not None:
        return header_map[rule.header]
    return rule.column_index  # type: ignore[return-value]


def _matching_items(section: SectionRule, label: object) -> list[ItemOverride]:
    if not section.items or is_empty(label):
        return []
    return [item for item in section.items if marker_matches(Marker(item.name, item.mode), label)]


def _run_section(
    grid: Grid, section: SectionRule, search_from_row: int, header_map: dict[str, int]
) -> SectionResult:
    bounds = find_section(grid, section.column_index, section.start, section.end, search_from_row)
    if not bounds.found:
        if bounds.start_row is not None:
            message = f"end marker ({section.end.describe()}) not found"
        else:
            message = "not found in file"
        logger.debug("sheet=%s section=%s %s", grid.sheet_name, section.name, message)
        return SectionResult(
            name=section.name,
            found=False,
            sheet=grid.sheet_name,
            start_row=bounds.start_row,
            marker_row=bounds.marker_row,
            message=message,
        )

    label_col = section.label_column_index
    columns = [_field_column(rule, header_map) for rule in section.fields]
    results: list[FieldResult] = []

    for row in bounds.rows:
        values = [cell(grid, row, c) for c in columns]
        label = cell(grid, row, label_col) if label_col is not None else None
        counted = any(not is_empty(v) for v in values) or (
            section.count_labelled_rows and not is_empty(label)
        )
        matched = _matching_items(section, label)
        if counted and not any(item.exclude_from_section for item in matched):
            for rule, col, value in zip(section.fields, columns, values, strict=True):
                results.append(evaluate(value, rule, row, col, grid.sheet_name))

        for item in matched:
            for rule in item.fields:
                col = _field_column(rule, header_map)
                results.append(
                    evaluate(cell(grid, row, col), rule, row, col, grid.sheet_name, item=display_value(label))
                )

    logger.debug(
        "sheet=%s section=%s rows=%d-%d fields=%d",
        grid.sheet_name,
        section.name,
        bounds.start_row + 1,  # type: ignore[operator]
        bounds.end_row + 1,  # type: ignore[operator]
        len(results),
    )
    return SectionResult(
        name=section.name,
        found=True,
        sheet=grid.sheet_name,
        start_row=bounds.start_row,
        end_row=bounds.end_row,
        marker_row=bounds.marker_row,
        fields=tuple(results),
    )


def _run_cell(grid: Grid, rule: CellRule) -> FieldResult:
    row, col = rule.position
    return evaluate(cell(grid, row, col), rule.field_rule, row, col, grid.sheet_name)


def _run_lookup(grid: Grid, lookup: LookupRule) -> list[FieldResult]:
    find_col = lookup.find.column_index or 0
    start = 0
    if lookup.after is not None:
        anchor = find_row(grid, find_col, lookup.after, 0)
        if anchor is None:
            return [evaluate_not_found(r, grid.sheet_name, item=lookup.label) for r in lookup.fields]
        start = anchor + 1

    row = find_row(grid, find_col, lookup.find, start)
    if row is None:
        logger.debug("sheet=%s lookup=%s label not found", grid.sheet_name, lookup.label)
        return [evaluate_not_found(r, grid.sheet_name, item=lookup.label) for r in lookup.fields]
    return [
        evaluate(cell(grid, row, r.column_index), r, row, r.column_index, grid.sheet_name, item=lookup.label)  # type: ignore[arg-type]
        for r in lookup.fields
    ]


def _reference_rule(check: ReferenceField, reference: ReferenceRow) -> FieldRule:
    raw = reference.get(check.reference)
    if check.kind is ExpectKind.NUMBER:
        number = normalize_numeric(raw)
        display = f"{number:.{check.decimals}f}" if number is not None else (raw or "n/a")
        expect = Expectation.number(number, decimals=check.decimals, display=display)
        return FieldRule(label=check.label, expect=expect, column=check.column, epsilon=check.epsilon)
    return FieldRule(label=check.label, expect=Expectation.text(raw), column=check.column)


def _find_item_row(grid: Grid, label_col: int, name: str, keywords: tuple[str, ...]) -> int | None:
    for row in range(grid.row_count):
        label = cell(grid, row, label_col)
        if is_empty(label):
            continue
        if item_matches(name, display_value(label), keywords):
            return row
    return None


def _run_reference(grid: Grid, rule: ReferenceItemRule) -> list[ItemResult]:
    results: list[ItemResult] = []
    label_col = rule.label_column_index
    for item in rule.items:
        reference = next(
            (r for r in rule.rows if item_matches(item.name, r.get(rule.description_field), item.keywords)),
            None,
        )
        if reference is None:
            results.append(ItemResult(item.name, ItemStatus.NOT_FOUND_IN_REFERENCE, sheet=grid.sheet_name))
            continue
        row = _find_item_row(grid, label_col, item.name, item.keywords)
        if row is None:
            results.append(ItemResult(item.name, ItemStatus.NOT_FOUND_IN_FILE, sheet=grid.sheet_name))
            continue
        fields = tuple(
            evaluate(
                cell(grid, row, check.column_index),
                _reference_rule(check, reference),
                row,
                check.column_index,
                grid.sheet_name,
                item=item.name,
            )
            for check in rule.fields
        )
        results.append(ItemResult(item.name, ItemStatus.FOUND, row=row, sheet=grid.sheet_name, fields=fields))
    return results


def run(grid: Grid, rule_set: RuleSet, file_name: str = "") -> ValidationRun:
    """Apply every rule of ``rule_set`` to one grid."""
    header_map: dict[str, int] = {}
    if rule_set.header_columns and rule_set.header_row_index is not None:
        header_map = locate_header_columns(grid, rule_set.header_row_index, rule_set.header_columns)

    sections: list[SectionResult] = []
    cursor = 0
    for section in rule_set.sections:
        result = _run_section(grid, section, cursor, header_map)
        sections.append(result)
        if result.found:
            cursor = result.end_row + 1  # type: ignore[operator]

    cells: list[FieldResult] = [_run_cell(grid, rule) for rule in rule_set.cells]
    for lookup in rule_set.lookups:
        cells.extend(_run_lookup(grid, lookup))

    items = _run_reference(grid, rule_set.reference) if rule_set.reference is not None else []

    return ValidationRun(
        file_name=file_name,
        rule_set=rule_set.name,
        sections=tuple(sections),
        cells=tuple(cells),
        items=tuple(items),
        sheets=(grid.sheet_name,),
    )


def _select_grids(workbook: Workbook, rule_set: RuleSet) -> list[Grid]:
    if rule_set.sheets is SheetPolicy.ALL:
        return list(workbook)
    if rule_set.sheets is SheetPolicy.LAST:
        grid = workbook.last()
    elif rule_set.sheets is SheetPolicy.NAMED:
        grid = workbook.get(rule_set.sheet_name or "")
    else:
        grid = workbook.first()
    return [grid] if grid is not None else []


def run_workbook(workbook: Workbook, rule_set: RuleSet, file_name: str | None = None) -> ValidationRun:
    """Apply ``rule_set`` to the sheets of ``workbook`` chosen by its sheet policy.

    With ``SheetPolicy.ALL`` every sheet is validated independently and only
    sheets where at least one section was found are reported; if none
    qualifies, the first sheet's (not found) results are reported.
    """
    name = file_name if file_name is not None else workbook.name
    grids = _select_grids(workbook, rule_set)
    if not grids:
        if rule_set.sheets is SheetPolicy.NAMED:
            return ValidationRun.failed(name, rule_set.name, f"sheet '{rule_set.sheet_name}' not found")
        return ValidationRun.failed(name, rule_set.name, "workbook has no sheets")

    runs = [run(grid, rule_set, name) for grid in grids]
    if len(runs) == 1:
        return runs[0]

    kept = [r for r in runs if r.sections_found] if rule_set.sections else runs
    if not kept:
        kept = runs[:1]
    logger.debug("file=%s sheets=%d reported=%d", name, len(runs), len(kept))
    return ValidationRun(
        file_name=name,
        rule_set=rule_set.name,
        sections=tuple(s for r in kept for s in r.sections),
        cells=tuple(c for r in kept for c in r.cells),
        items=tuple(i for r in kept for i in r.items),
        sheets=tuple(s for r in kept for s in r.sheets),
    )
