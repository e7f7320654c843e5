from __future__ import annotations

from typing import Any

from ..excel.grid import cell_address
from ..models.results import FieldResult, Verdict
from ..models.rules import ExpectKind, FieldRule
from .normalize import (
    is_empty,
    normalize_boolean,
    normalize_numeric,
    normalize_percentage,
    normalize_text,
    round_to,
)

"""Rule evaluator: one raw cell + one FieldRule -> FieldResult.

Malformed buyer input is the common case, so nothing here raises for bad
cell content: empty or unparseable values simply come back INVALID.
"""

__all__ = [
    "evaluate",
    "evaluate_not_found",
    "compare_numeric",
]


def compare_numeric(
    actual: float | None, expected: float | None, decimals: int, epsilon: float | None = None
) -> Verdict:
    """Compare two numbers rounded to ``decimals`` places.

    A WARNING is returned only when ``epsilon`` is given and the rounded
    deviation equals it exactly (not "up to" it).
    """
    if actual is None or expected is None:
        return Verdict.INVALID
    a = round_to(actual, decimals)
    e = round_to(expected, decimals)
    if a == e:
        return Verdict.VALID
    if epsilon is not None and round_to(abs(a - e), decimals) == round_to(epsilon, decimals):
        return Verdict.WARNING
    return Verdict.INVALID


def _judge(actual: Any, rule: FieldRule) -> tuple[Verdict, Any]:
    expect = rule.expect
    kind = expect.kind

    if kind is ExpectKind.TEXT:
        normalized = normalize_text(actual)
        ok = normalized == normalize_text(expect.value)
        return (Verdict.VALID if ok else Verdict.INVALID), normalized

    if kind is ExpectKind.PRESENT:
        return Verdict.VALID, actual

    if kind is ExpectKind.BOOLEAN:
        flag = normalize_boolean(actual)
        ok = flag is not None and flag == expect.value
        return (Verdict.VALID if ok else Verdict.INVALID), flag

    if kind is ExpectKind.NUMBER:
        number = normalize_numeric(actual)
        return compare_numeric(number, expect.value, expect.decimals, rule.epsilon), number

    if kind is ExpectKind.PERCENTAGE:
        fraction = normalize_percentage(actual)
        return compare_numeric(fraction, expect.value, expect.decimals, rule.epsilon), fraction

    # range
    number = normalize_percentage(actual) if expect.percent else normalize_numeric(actual)
    if number is None:
        return Verdict.INVALID, None
    ok = expect.minimum <= number <= expect.maximum
    return (Verdict.VALID if ok else Verdict.INVALID), number


def evaluate(
    actual: Any,
    rule: FieldRule,
    row: int = -1,
    col: int | None = None,
    sheet: str = "",
    item: str | None = None,
) -> FieldResult:
    """Evaluate a raw cell value against ``rule``.

    ``col`` defaults to the rule's fixed column; header-located rules must
    pass the resolved column.
    """
    column = rule.column_index if col is None else col
    if column is None:
        column = -1
    address = cell_address(row, column) if row >= 0 and column >= 0 else ""

    if is_empty(actual):
        verdict, normalized = Verdict.INVALID, None
    else:
        verdict, normalized = _judge(actual, rule)

    return FieldResult(
        label=rule.label,
        verdict=verdict,
        expected=rule.expect.describe(),
        actual=actual,
        normalized=normalized,
        row=row,
        col=column,
        address=address,
        sheet=sheet,
        item=item,
    )


def evaluate_not_found(rule: FieldRule, sheet: str = "", item: str | None = None) -> FieldResult:
    """INVALID result for a field whose row could not be located at all."""
    return FieldResult(
        label=rule.label,
        verdict=Verdict.INVALID,
        expected=rule.expect.describe(),
        sheet=sheet,
        item=item,
        found=False,
    )
