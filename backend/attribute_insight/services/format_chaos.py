"""Format chaos analysis for free-text attribute values.

The detectors are pure functions over value strings; `analyze_attribute`
loads an attribute's distinct values and runs all of them.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from attribute_insight.eav.backends import value_backend_for, value_table_exists
from attribute_insight.eav.catalog import get_attribute_by_code, resolve_entity_type
from attribute_insight.models.attribute import Attribute
from attribute_insight.schemas.chaos import (
    AttributeChaosReport,
    ChaosScan,
    SpacingIssue,
    StandardizationRule,
    StandardizationSuggestion,
    TemperatureFormatIssue,
    UnitIssue,
)

logger = logging.getLogger(__name__)

VALUE_SAMPLE_LIMIT = 1000
EXAMPLE_LIMIT = 10
SPACING_EXAMPLE_LIMIT = 3

UNIT_PATTERNS: dict[str, tuple[str, ...]] = {
    "length": ("mm", "cm", "m", "meter", "millimeter", "zentimeter"),
    "power": ("w", "kw", "watt", "kilowatt"),
    "temperature": ("°c", "°f", "c", "celsius", "grad"),
    "volume": ("l", "liter", "ml", "milliliter"),
    "weight": ("kg", "g", "kilogramm", "gramm"),
    "voltage": ("v", "volt"),
}

# A unit token must not touch another letter; digits and symbols are boundaries,
# so both "50 cm" and "50cm" count as "cm".
_UNIT_RES: dict[str, list[tuple[str, re.Pattern[str]]]] = {
    category: [
        (unit, re.compile(r"(?<![^\W\d_])" + re.escape(unit) + r"(?![^\W\d_])", re.IGNORECASE))
        for unit in units
    ]
    for category, units in UNIT_PATTERNS.items()
}

_WITH_SPACE_RE = re.compile(r"\d+\s+[a-zA-Z°]")
_WITHOUT_SPACE_RE = re.compile(r"\d+[a-zA-Z°]")

_CELSIUS_SYMBOL_RE = re.compile(r"[-+]?\d+\s*°c", re.IGNORECASE)
_CELSIUS_WORD_RE = re.compile(r"[-+]?\d+\s*(celsius|grad)", re.IGNORECASE)
_RANGE_DASH_RE = re.compile(r"[-+]?\d+\s*bis\s*[-+]?\d+", re.IGNORECASE)
_RANGE_SLASH_RE = re.compile(r"[-+]?\d+\s*/\s*[-+]?\d+")

TEMPERATURE_FORMATS = ("celsius_symbol", "celsius_text", "celsius_grad", "range_dash", "range_slash")

_BARE_NUMBER_RE = re.compile(r"^\d+(\.\d+)?$")
_HAS_DIGIT_RE = re.compile(r"\d+")

_UNIT_CATEGORY_POINTS = 10
_SPACING_POINTS = 20
_TEMPERATURE_POINTS_PER_FORMAT = 7
_TEMPERATURE_POINTS_CAP = 20
_BARE_NUMBER_POINTS = 20

_CHAOS_INPUTS = ("text", "textarea")
_CHAOS_BACKENDS = ("varchar", "text")


def detect_unit_inconsistencies(values: Sequence[str]) -> dict[str, UnitIssue]:
    """Unit categories in which more than one distinct unit token occurs."""

    detected: dict[str, UnitIssue] = {}
    for category, patterns in _UNIT_RES.items():
        counts: dict[str, int] = {}
        for value in values:
            text = str(value)
            for unit, pattern in patterns:
                if pattern.search(text):
                    counts[unit] = counts.get(unit, 0) + 1
        if len(counts) > 1:
            detected[category] = UnitIssue(found_units=list(counts), counts=counts)
    return detected


def detect_spacing_issues(values: Sequence[str]) -> SpacingIssue | None:
    """Report mixed "100 mm" / "100mm" spacing, or None when consistent."""

    with_space = 0
    without_space = 0
    examples: dict[str, list[str]] = {"with_space": [], "without_space": []}
    for value in values:
        text = str(value)
        if _WITH_SPACE_RE.search(text):
            with_space += 1
            if len(examples["with_space"]) < SPACING_EXAMPLE_LIMIT:
                examples["with_space"].append(text)
        elif _WITHOUT_SPACE_RE.search(text):
            without_space += 1
            if len(examples["without_space"]) < SPACING_EXAMPLE_LIMIT:
                examples["without_space"].append(text)

    if with_space and without_space:
        return SpacingIssue(
            with_space_count=with_space,
            without_space_count=without_space,
            examples=examples,
        )
    return None


def detect_temperature_formats(values: Sequence[str]) -> TemperatureFormatIssue | None:
    """Report when more than one temperature notation is in use."""

    counts = dict.fromkeys(TEMPERATURE_FORMATS, 0)
    examples: dict[str, str] = {}

    def hit(name: str, value: str) -> None:
        counts[name] += 1
        examples.setdefault(name, value)

    for value in values:
        text = str(value)
        lowered = text.lower()
        if _CELSIUS_SYMBOL_RE.search(lowered):
            hit("celsius_symbol", text)
        if _CELSIUS_WORD_RE.search(lowered):
            hit("celsius_text" if "celsius" in lowered else "celsius_grad", text)
        if _RANGE_DASH_RE.search(lowered):
            hit("range_dash", text)
        if _RANGE_SLASH_RE.search(lowered):
            hit("range_slash", text)

    found = {name: count for name, count in counts.items() if count}
    if len(found) > 1:
        return TemperatureFormatIssue(formats_found=found, examples=examples)
    return None


def calculate_chaos_score(values: Sequence[str]) -> float:
    """Heuristic 0-100 inconsistency score."""

    if not values:
        return 0.0

    score = float(len(detect_unit_inconsistencies(values)) * _UNIT_CATEGORY_POINTS)

    if detect_spacing_issues(values) is not None:
        score += _SPACING_POINTS

    temperature = detect_temperature_formats(values)
    if temperature is not None:
        score += min(_TEMPERATURE_POINTS_CAP, len(temperature.formats_found) * _TEMPERATURE_POINTS_PER_FORMAT)

    bare = 0
    with_unit = 0
    for value in values:
        text = str(value)
        if _BARE_NUMBER_RE.match(text.strip()):
            bare += 1
        elif _HAS_DIGIT_RE.search(text):
            with_unit += 1
    if bare and with_unit:
        score += bare / (bare + with_unit) * _BARE_NUMBER_POINTS

    return min(100.0, round(score, 2))


def analyze_attribute(db: Session, attribute_code: str, entity_type_code: str) -> AttributeChaosReport:
    """Chaos report for one attribute; missing data yields a zero score with a note."""

    entity_type = resolve_entity_type(db, entity_type_code)
    attribute = get_attribute_by_code(db, entity_type.id, attribute_code) if entity_type else None
    if attribute is None or attribute.backend_type == "static":
        return AttributeChaosReport(attribute_code=attribute_code, note="Attribute not found or static")

    values = load_distinct_values(db, attribute)
    if values is None:
        return AttributeChaosReport(attribute_code=attribute_code, note="Value table not found")
    if not values:
        return AttributeChaosReport(attribute_code=attribute_code, note="No values found")

    return AttributeChaosReport(
        attribute_code=attribute_code,
        chaos_score=calculate_chaos_score(values),
        value_count=len(values),
        unit_issues=detect_unit_inconsistencies(values),
        spacing_issues=detect_spacing_issues(values),
        temperature_formats=detect_temperature_formats(values),
        examples=values[:EXAMPLE_LIMIT],
    )


def analyze_attributes(db: Session, entity_type_code: str, limit: int = 20) -> ChaosScan:
    """Scan text attributes of an entity type and keep the chaotic ones."""

    entity_type = resolve_entity_type(db, entity_type_code)
    if entity_type is None:
        return ChaosScan(error="Entity type not found")

    attributes = list(
        db.scalars(
            select(Attribute)
            .where(
                Attribute.entity_type_id == entity_type.id,
                Attribute.frontend_input.in_(_CHAOS_INPUTS),
                Attribute.backend_type.in_(_CHAOS_BACKENDS),
            )
            .order_by(Attribute.attribute_code.asc())
            .limit(limit)
        )
    )
    reports = [analyze_attribute(db, attribute.attribute_code, entity_type_code) for attribute in attributes]
    chaotic = [report for report in reports if report.chaos_score > 0]
    chaotic.sort(key=lambda report: report.chaos_score, reverse=True)

    logger.info(
        "chaos.scan_complete entity_type=%s analyzed=%d chaotic=%d",
        entity_type_code,
        len(attributes),
        len(chaotic),
    )
    return ChaosScan(analyzed=len(attributes), chaotic=len(chaotic), attributes=chaotic)


def suggest_standard_format(db: Session, attribute_code: str, entity_type_code: str) -> StandardizationSuggestion:
    """Advisory standardization rules for each detector that fired."""

    report = analyze_attribute(db, attribute_code, entity_type_code)
    if report.chaos_score == 0:
        return StandardizationSuggestion(suggestion="No standardization needed")

    rules: list[StandardizationRule] = []
    for category, issue in report.unit_issues.items():
        target_unit = _most_common(issue.counts)
        rules.append(
            StandardizationRule(
                type="unit_standardization",
                category=category,
                target_unit=target_unit,
                description=f"Standardize all {category} units to '{target_unit}'",
            )
        )

    if report.spacing_issues is not None:
        spacing = report.spacing_issues
        preferred = "with_space" if spacing.with_space_count > spacing.without_space_count else "without_space"
        rules.append(
            StandardizationRule(
                type="spacing_standardization",
                format=preferred,
                description=(
                    "Add space between numbers and units"
                    if preferred == "with_space"
                    else "Remove space between numbers and units"
                ),
            )
        )

    if report.temperature_formats is not None:
        target_format = _most_common(report.temperature_formats.formats_found)
        rules.append(
            StandardizationRule(
                type="temperature_standardization",
                target_format=target_format,
                description=f"Standardize temperature format to '{target_format}'",
            )
        )

    return StandardizationSuggestion(
        suggestion="Apply standardization rules to improve data consistency",
        chaos_score=report.chaos_score,
        rules=rules,
    )


def load_distinct_values(db: Session, attribute: Attribute, limit: int = VALUE_SAMPLE_LIMIT) -> list[str] | None:
    """Distinct non-empty values as strings, or None when no value table exists."""

    backend = value_backend_for(attribute.backend_type)
    if backend is None or not value_table_exists(db, backend):
        return None
    model = backend.model
    rows = db.scalars(
        select(model.value)
        .where(model.attribute_id == attribute.id, backend.filled_condition())
        .distinct()
        .order_by(model.value.asc())
        .limit(limit)
    )
    return [str(value) for value in rows]


def _most_common(counts: dict[str, int]) -> str:
    """First key holding the maximum count."""

    best = max(counts.values())
    return next(key for key, count in counts.items() if count == best)
