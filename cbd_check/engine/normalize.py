from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

"""Value normalization for heterogeneous cell representations.

Buyer files store the same logical field in several shapes: wastage may be
``0.05``, ``5`` or ``"5%"``; prices may carry ``$`` and thousands separators;
booleans may be native or the text ``"TRUE"``. These helpers turn a raw cell
into a comparable canonical value. Unparseable input yields ``None`` so that
callers can tell "cannot evaluate" apart from a real zero.
"""

__all__ = [
    "EMPTY_DISPLAY",
    "is_empty",
    "normalize_numeric",
    "normalize_percentage",
    "normalize_boolean",
    "normalize_text",
    "round_to",
    "display_value",
]

EMPTY_DISPLAY = "Empty"

_STRIP_RE = re.compile(r"[$,\s]")
_SPACES_RE = re.compile(r"\s+")


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    return False


def _parse_float(text: str) -> float | None:
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def normalize_numeric(value: Any) -> float | None:
    """Parse a cell as a number after stripping ``$``, ``,`` and whitespace."""
    if is_empty(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    return _parse_float(_STRIP_RE.sub("", str(value)))


def normalize_percentage(value: Any) -> float | None:
    """Parse a cell as a fraction (5% -> 0.05).

    ``"5%"`` is divided by 100; a bare number below 1 is taken as already
    fractional; a bare number of 1 or more is taken as a whole percentage.
    A stored ``1`` therefore reads as 1%, not 100%.
    """
    if is_empty(value) or isinstance(value, bool):
        return None
    if isinstance(value, str):
        cleaned = _STRIP_RE.sub("", value)
        if cleaned.endswith("%"):
            number = _parse_float(cleaned[:-1])
            return None if number is None else number / 100
        number = _parse_float(cleaned)
    else:
        number = normalize_numeric(value)
    if number is None:
        return None
    if number < 1:
        return number
    return number / 100


def normalize_boolean(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().upper()
        if text == "TRUE":
            return True
        if text == "FALSE":
            return False
    return None


def _format_number(number: float) -> str:
    if number.is_integer():
        return str(int(number))
    return repr(number)


def normalize_text(value: Any) -> str:
    """Canonical form for text comparison.

    Trims, collapses inner whitespace, drops a trailing label colon
    (``"Factory:"``) and case-folds.
    """
    if is_empty(value):
        return ""
    if isinstance(value, bool):
        text = "TRUE" if value else "FALSE"
    elif isinstance(value, float):
        text = _format_number(value)
    else:
        text = str(value)
    text = _SPACES_RE.sub(" ", text.strip())
    text = text.rstrip(":").rstrip()
    return text.casefold()


def round_to(value: float, decimals: int) -> float:
    """Round half away from zero at ``decimals`` places."""
    try:
        quantum = Decimal(1).scaleb(-decimals)
        rounded = Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return float(value)
    return float(rounded)


def display_value(value: Any) -> str:
    """Render a raw cell for reports; empty cells show as ``Empty``."""
    if is_empty(value):
        return EMPTY_DISPLAY
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        return _format_number(value)
    if isinstance(value, str):
        return value.strip()
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)
