"""Duplicate attribute detection over an entity type's attribute catalog."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from time import perf_counter

from sqlalchemy.orm import Session

from attribute_insight.config import Settings, get_settings
from attribute_insight.duplicates.similarity import code_similarity, label_similarity, set_overlap
from attribute_insight.eav.catalog import (
    base_option_labels,
    describe_attribute,
    get_attribute,
    list_attributes,
    resolve_entity_type,
)
from attribute_insight.models.attribute import Attribute
from attribute_insight.schemas.attributes import AttributeRef
from attribute_insight.schemas.duplicates import (
    AttributeComparison,
    AttributeComparisonDetail,
    DuplicateGroup,
    DuplicateGroupType,
    SimilarAttribute,
    ValueOverlapDetail,
)

logger = logging.getLogger(__name__)

STRATEGY_CODE = "code"
STRATEGY_LABEL = "label"
STRATEGY_VALUES = "values"
STRATEGIES = (STRATEGY_CODE, STRATEGY_LABEL, STRATEGY_VALUES)

# Seed table for the gastronomy catalog: category -> code substrings.
KNOWN_PATTERNS: dict[str, tuple[str, ...]] = {
    "dimensions": ("breite", "width", "laenge", "length", "hoehe", "height", "tiefe", "depth", "abmessungen"),
    "power": ("leistung", "nennleistung", "power", "wattage", "anschlussleistung"),
    "voltage": ("spannung", "voltage", "anschluss", "anschlusswert"),
    "temperature": ("temperatur", "temperaturbereich", "temp_range", "kaeltebereich"),
    "capacity": ("kapazitaet", "capacity", "fassungsvermoegen", "inhalt", "volumen"),
    "weight": ("gewicht", "weight", "nettogewicht", "bruttogewicht"),
    "material": ("material", "werkstoff", "oberflaeche", "ausfuehrung_material"),
}

_CODE_WEIGHT = 0.4
_LABEL_WEIGHT = 0.3
_SAME_TYPE_BONUS = 0.3
_REASON_MIN_SCORE = 0.5


def get_known_patterns() -> dict[str, list[str]]:
    """Return the known duplicate pattern table."""

    return {category: list(patterns) for category, patterns in KNOWN_PATTERNS.items()}


def find_duplicates(
    db: Session,
    entity_type_code: str,
    threshold: float | None = None,
    strategies: Iterable[str] | None = None,
    *,
    include_system: bool = False,
    settings: Settings | None = None,
) -> list[DuplicateGroup]:
    """Group attributes likely representing the same concept.

    `threshold` is a percentage (0-100). Each requested strategy runs a greedy
    single-linkage pass; the known-pattern pass always runs. Groups with an
    identical attribute-id set are reported once, keeping the first seen.
    """

    settings = settings or get_settings()
    percent = settings.duplicate_similarity_threshold if threshold is None else threshold
    cutoff = percent / 100
    if strategies is None:
        requested = [STRATEGY_CODE]
        if settings.duplicate_check_labels:
            requested.append(STRATEGY_LABEL)
    else:
        requested = [strategy for strategy in strategies if strategy in STRATEGIES]

    started = perf_counter()
    entity_type = resolve_entity_type(db, entity_type_code)
    if entity_type is None:
        logger.warning("duplicates.unknown_entity_type entity_type=%s", entity_type_code)
        return []

    attributes = list_attributes(db, entity_type.id, include_system=include_system)

    groups: list[DuplicateGroup] = []
    if STRATEGY_CODE in requested:
        groups.extend(
            _as_groups(
                "code_similarity",
                _greedy_groups(
                    attributes,
                    lambda left, right: code_similarity(left.attribute_code, right.attribute_code),
                    cutoff,
                ),
            )
        )
    if STRATEGY_LABEL in requested:
        labelled = [attribute for attribute in attributes if attribute.frontend_label]
        groups.extend(
            _as_groups(
                "label_similarity",
                _greedy_groups(
                    labelled,
                    lambda left, right: label_similarity(left.frontend_label, right.frontend_label),
                    cutoff,
                ),
            )
        )
    if STRATEGY_VALUES in requested:
        groups.extend(_find_by_value_overlap(db, attributes, cutoff))
    groups.extend(_find_by_known_patterns(attributes))

    unique = _deduplicate_groups(groups)
    logger.info(
        "duplicates.scan_complete entity_type=%s threshold=%.1f strategies=%s attributes=%d groups=%d total_ms=%.2f",
        entity_type_code,
        percent,
        ",".join(requested),
        len(attributes),
        len(unique),
        (perf_counter() - started) * 1000.0,
    )
    return unique


def find_similar_to(
    db: Session,
    attribute_id: int,
    threshold: float | None = None,
    *,
    settings: Settings | None = None,
) -> list[SimilarAttribute]:
    """Rank other attributes of the same entity type by weighted similarity."""

    settings = settings or get_settings()
    percent = settings.duplicate_similarity_threshold if threshold is None else threshold
    cutoff = percent / 100

    source = get_attribute(db, attribute_id)
    if source is None:
        return []

    others = [
        attribute
        for attribute in list_attributes(db, source.entity_type_id)
        if attribute.id != source.id
    ]
    similar: list[SimilarAttribute] = []
    for other in others:
        score = overall_similarity(source, other)
        if score < cutoff:
            continue
        similar.append(
            SimilarAttribute(
                attribute_id=other.id,
                code=other.attribute_code,
                label=other.frontend_label,
                similarity=round(score * 100, 1),
                reasons=similarity_reasons(source, other),
            )
        )
    similar.sort(key=lambda item: item.similarity, reverse=True)
    return similar


def compare_two_attributes(db: Session, attribute_id_1: int, attribute_id_2: int) -> AttributeComparison:
    """Structured comparison with a merge recommendation."""

    first = get_attribute(db, attribute_id_1)
    second = get_attribute(db, attribute_id_2)
    if first is None or second is None:
        return AttributeComparison(error="One or both attributes not found")

    code_score = code_similarity(first.attribute_code, second.attribute_code)
    label_score = label_similarity(first.frontend_label, second.frontend_label)
    return AttributeComparison(
        attribute_1=describe_attribute(first),
        attribute_2=describe_attribute(second),
        comparison=AttributeComparisonDetail(
            code_similarity=round(code_score * 100, 1),
            label_similarity=round(label_score * 100, 1),
            same_type=first.frontend_input == second.frontend_input,
            same_backend=first.backend_type == second.backend_type,
            value_overlap=_value_overlap_detail(db, first, second),
        ),
        recommendation=merge_recommendation(first, second),
    )


def overall_similarity(left: Attribute, right: Attribute) -> float:
    code_score = code_similarity(left.attribute_code, right.attribute_code)
    label_score = label_similarity(left.frontend_label, right.frontend_label)
    type_bonus = _SAME_TYPE_BONUS if left.frontend_input == right.frontend_input else 0.0
    return code_score * _CODE_WEIGHT + label_score * _LABEL_WEIGHT + type_bonus


def similarity_reasons(left: Attribute, right: Attribute) -> list[str]:
    reasons: list[str] = []
    code_score = code_similarity(left.attribute_code, right.attribute_code)
    if code_score > _REASON_MIN_SCORE:
        reasons.append(f"Similar code ({round(code_score * 100)}%)")
    label_score = label_similarity(left.frontend_label, right.frontend_label)
    if label_score > _REASON_MIN_SCORE:
        reasons.append(f"Similar label ({round(label_score * 100)}%)")
    if left.frontend_input == right.frontend_input:
        reasons.append(f"Same type ({left.frontend_input})")
    for category in sorted(pattern_categories(left.attribute_code) & pattern_categories(right.attribute_code)):
        reasons.append(f"Both in '{category}' category")
    return reasons


def merge_recommendation(left: Attribute, right: Attribute) -> str:
    code_score = code_similarity(left.attribute_code, right.attribute_code)
    label_score = label_similarity(left.frontend_label, right.frontend_label)
    same_type = left.frontend_input == right.frontend_input

    if code_score > 0.8 and same_type:
        return "MERGE_RECOMMENDED: High similarity, same type - strong candidate for merging"
    if code_score > 0.6 or label_score > 0.7:
        return "REVIEW_RECOMMENDED: Moderate similarity - manual review suggested"
    if not same_type:
        return "NO_MERGE: Different types - merging not recommended"
    return "LOW_SIMILARITY: Unlikely to be duplicates"


def pattern_categories(attribute_code: str) -> set[str]:
    """Known-pattern categories whose substrings occur in the code."""

    lowered = attribute_code.lower()
    return {
        category
        for category, patterns in KNOWN_PATTERNS.items()
        if any(pattern in lowered for pattern in patterns)
    }


def _greedy_groups(
    items: Sequence[Attribute],
    score: Callable[[Attribute, Attribute], float],
    cutoff: float,
) -> list[list[Attribute]]:
    """First-seed-wins single-linkage grouping in list order."""

    processed: set[int] = set()
    groups: list[list[Attribute]] = []
    for index, seed in enumerate(items):
        if seed.id in processed:
            continue
        group = [seed]
        for candidate in items[index + 1 :]:
            if candidate.id in processed:
                continue
            if score(seed, candidate) >= cutoff:
                group.append(candidate)
                processed.add(candidate.id)
        if len(group) > 1:
            processed.add(seed.id)
            groups.append(group)
    return groups


def _find_by_value_overlap(db: Session, attributes: Sequence[Attribute], cutoff: float) -> list[DuplicateGroup]:
    option_sets: dict[int, list[str]] = {}
    for attribute in attributes:
        if not attribute.is_select:
            continue
        labels = [label.lower() for _, label in base_option_labels(db, attribute.id)]
        if labels:
            option_sets[attribute.id] = labels

    candidates = [attribute for attribute in attributes if attribute.id in option_sets]
    if len(candidates) < 2:
        return []
    grouped = _greedy_groups(
        candidates,
        lambda left, right: set_overlap(option_sets[left.id], option_sets[right.id]),
        cutoff,
    )
    return _as_groups("value_overlap", grouped)


def _find_by_known_patterns(attributes: Sequence[Attribute]) -> list[DuplicateGroup]:
    groups: list[DuplicateGroup] = []
    for category, patterns in KNOWN_PATTERNS.items():
        found = [
            attribute
            for attribute in attributes
            if any(pattern in attribute.attribute_code.lower() for pattern in patterns)
        ]
        if len(found) > 1:
            groups.append(
                DuplicateGroup(type="known_pattern", category=category, attributes=_refs(found))
            )
    return groups


def _as_groups(group_type: DuplicateGroupType, grouped: list[list[Attribute]]) -> list[DuplicateGroup]:
    return [DuplicateGroup(type=group_type, attributes=_refs(group)) for group in grouped]


def _refs(attributes: Iterable[Attribute]) -> list[AttributeRef]:
    return [
        AttributeRef(id=attribute.id, code=attribute.attribute_code, label=attribute.frontend_label)
        for attribute in attributes
    ]


def _deduplicate_groups(groups: list[DuplicateGroup]) -> list[DuplicateGroup]:
    seen: set[frozenset[int]] = set()
    unique: list[DuplicateGroup] = []
    for group in groups:
        key = frozenset(ref.id for ref in group.attributes)
        if key in seen:
            continue
        seen.add(key)
        unique.append(group)
    return unique


def _value_overlap_detail(db: Session, first: Attribute, second: Attribute) -> ValueOverlapDetail:
    if first.frontend_input != second.frontend_input:
        return ValueOverlapDetail(compatible=False, overlap=0.0)
    if not first.is_select:
        return ValueOverlapDetail(compatible=True, note="Text attributes - manual review needed")

    values_1 = [label.lower() for _, label in base_option_labels(db, first.id)]
    values_2 = [label.lower() for _, label in base_option_labels(db, second.id)]
    return ValueOverlapDetail(
        compatible=True,
        overlap=round(set_overlap(values_1, values_2) * 100, 1),
        values_1=len(values_1),
        values_2=len(values_2),
        common=len(set(values_1) & set(values_2)),
    )

