"""Deterministic similarity scores for attribute codes, labels and option sets."""

from __future__ import annotations

import re
from collections.abc import Iterable
from difflib import SequenceMatcher

from rapidfuzz.distance import Levenshtein

_CODE_PREFIX_RE = re.compile(r"^(attr_|attribute_|custom_|product_)")
_CODE_SUFFIX_RE = re.compile(r"(_dropdown|_select|_multiselect|_text|_textarea)$")

_EDIT_WEIGHT = 0.4
_OVERLAP_WEIGHT = 0.4
_CONTAINS_BONUS = 0.2


def normalize_code(code: str) -> str:
    """Strip decoration prefixes/suffixes, lower-case and drop underscores."""

    lowered = code.strip().lower()
    lowered = _CODE_PREFIX_RE.sub("", lowered)
    lowered = _CODE_SUFFIX_RE.sub("", lowered)
    return lowered.replace("_", "")


def character_overlap(left: str, right: str) -> float:
    """Matched-character ratio 2*M/T, computed on a canonical argument order."""

    if not left and not right:
        return 1.0
    first, second = sorted((left, right))
    return SequenceMatcher(None, first, second, autojunk=False).ratio()


def code_similarity(code1: str, code2: str) -> float:
    """Composite code score in [0, 1]: edit distance, overlap and containment."""

    left = normalize_code(code1)
    right = normalize_code(code2)
    if left == right:
        return 1.0

    max_len = max(len(left), len(right))
    edit_score = 1 - (Levenshtein.distance(left, right) / max_len)
    overlap_score = character_overlap(left, right)
    contains_bonus = _CONTAINS_BONUS if (left in right or right in left) else 0.0

    return min(1.0, edit_score * _EDIT_WEIGHT + overlap_score * _OVERLAP_WEIGHT + contains_bonus)


def label_similarity(label1: str | None, label2: str | None) -> float:
    """Case-insensitive label score; empty labels never match."""

    left = (label1 or "").strip().lower()
    right = (label2 or "").strip().lower()
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    return character_overlap(left, right)


def set_overlap(values1: Iterable[str], values2: Iterable[str]) -> float:
    """Jaccard index over lower-cased values."""

    left = {value.lower() for value in values1}
    right = {value.lower() for value in values2}
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union)
