from __future__ import annotations

import re
from collections.abc import Sequence

"""Item-name matching between a buyer sheet and reference rows.

Descriptions are typed by hand on both sides, so names are compared after
punctuation folding and, failing an exact match, by keyword overlap.
"""

__all__ = [
    "normalize_item_name",
    "item_matches",
]

_PUNCT_RE = re.compile(r"[,;:\-_]+")
_SPACES_RE = re.compile(r"\s+")

MIN_KEYWORD_LENGTH = 4
KEYWORD_OVERLAP = 0.8


def normalize_item_name(name: str) -> str:
    text = _PUNCT_RE.sub(" ", str(name).casefold().strip())
    return _SPACES_RE.sub(" ", text).strip()


def _keywords(text: str) -> list[str]:
    return [w for w in text.split(" ") if len(w) >= MIN_KEYWORD_LENGTH]


def item_matches(wanted: str, candidate: str, keywords: Sequence[str] = ()) -> bool:
    """Whether ``candidate`` names the same item as ``wanted``.

    With ``keywords`` every keyword must appear in the candidate (e.g.
    ``["sewing", "thread"]`` accepts "Sewing Thread - See Vendor Guide" and
    "Thread, sewing"). Otherwise at least 80% of the shorter name's
    significant words (4+ letters) must match exactly.
    """
    a = normalize_item_name(wanted)
    b = normalize_item_name(candidate)
    if not a or not b:
        return False
    if a == b:
        return True
    if keywords:
        return all(k.casefold() in b for k in keywords)
    words_a = _keywords(a)
    words_b = _keywords(b)
    if not words_a or not words_b:
        return False
    matched = sum(1 for w in words_a if w in words_b)
    return matched >= min(len(words_a), len(words_b)) * KEYWORD_OVERLAP
