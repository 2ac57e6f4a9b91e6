"""Duplicate attribute detection package."""

from attribute_insight.duplicates.detector import (
    KNOWN_PATTERNS,
    compare_two_attributes,
    find_duplicates,
    find_similar_to,
    get_known_patterns,
)
from attribute_insight.duplicates.similarity import code_similarity, label_similarity, set_overlap

__all__ = [
    "KNOWN_PATTERNS",
    "code_similarity",
    "compare_two_attributes",
    "find_duplicates",
    "find_similar_to",
    "get_known_patterns",
    "label_similarity",
    "set_overlap",
]
