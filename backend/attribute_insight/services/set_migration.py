"""Attribute set reassignment: heuristic scoring, preview and execution."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from time import perf_counter

from sqlalchemy import case, delete, func, select
from sqlalchemy.orm import Session

from attribute_insight.config import Settings, get_settings
from attribute_insight.eav.backends import BackendType, VALUE_BACKENDS, value_table_exists
from attribute_insight.eav.catalog import (
    entity_has_value,
    get_attribute_by_code,
    get_attribute_set,
    get_attribute_set_by_name,
    resolve_entity_type,
    set_member_codes,
)
from attribute_insight.errors import NotFoundError, sanitize_error
from attribute_insight.models.attribute import Attribute
from attribute_insight.models.attribute_option import BASE_STORE_ID, AttributeOptionValue
from attribute_insight.models.attribute_set import AttributeSet, AttributeSetMember
from attribute_insight.models.catalog_entity import CatalogEntity, EntityCategory
from attribute_insight.models.entity_value import EntityIntValue
from attribute_insight.schemas.migration import (
    EntityMigrationPreview,
    FailedEntity,
    MigratedEntity,
    MigrationCandidate,
    MigrationPreview,
    MigrationPreviewSummary,
    MigrationResult,
    MisassignedEntity,
    SetDistributionRow,
    SetSuggestion,
    SkippedEntity,
    TargetSetInfo,
)

logger = logging.getLogger(__name__)

CRITERION_ATTRIBUTE = "attribute"
CRITERION_CATEGORY = "category"
CRITERION_MANUFACTURER = "manufacturer"
CRITERION_SKU_PATTERN = "sku_pattern"
CRITERIA = (CRITERION_ATTRIBUTE, CRITERION_CATEGORY, CRITERION_MANUFACTURER, CRITERION_SKU_PATTERN)

ATTRIBUTE_POINTS = 30
CATEGORY_POINTS = 25
MANUFACTURER_POINTS = 40
SKU_PATTERN_POINTS = 20
MAX_SCORE = 100
MISASSIGNED_MIN_SCORE = 50
DEFAULT_SET_NAME = "Default"
MANUFACTURER_CODE = "manufacturer"


@dataclass(frozen=True, slots=True)
class MigrationRule:
    """Signals that point an entity towards one target set."""

    attributes: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    manufacturers: tuple[str, ...] = ()
    sku_patterns: tuple[str, ...] = ()


# Target set name -> rule, for the gastronomy catalog.
MIGRATION_RULES: dict[str, MigrationRule] = {
    "Kühltechnik": MigrationRule(
        attributes=("kaeltemittel", "temperaturbereich", "energieverbrauch"),
        categories=("kühl", "tiefkühl", "kälte", "freezer", "refriger"),
        manufacturers=("Cool Compact", "Liebherr", "Nordcap"),
        sku_patterns=("KT-", "TK-", "COOL-"),
    ),
    "GN Behälter": MigrationRule(
        attributes=("gastronorm", "gn_groesse"),
        categories=("gastronorm", "gn behälter", "gn-behälter"),
        sku_patterns=("GN-", "GN1/", "GN2/"),
    ),
    "Kombidämpfer": MigrationRule(
        attributes=("dampferzeuger", "garraumgroesse"),
        categories=("kombidämpfer", "combi", "steamer"),
        manufacturers=("Rational", "Convotherm", "Eloma", "Unox"),
    ),
    "Aufschnittmaschinen": MigrationRule(
        attributes=("knife", "messerdurchmesser"),
        categories=("aufschnitt", "slicer", "schneidemaschine"),
        manufacturers=("ADE",),
        sku_patterns=("AS-", "SLICE-"),
    ),
    "Edelstahlmöbel": MigrationRule(
        attributes=("aufkantung", "edelstahl_staerke"),
        categories=("edelstahlmöbel", "arbeitstisch", "spültisch", "regal"),
        manufacturers=("Edelstahl",),
        sku_patterns=("ES-", "EST-"),
    ),
}


@dataclass(slots=True)
class MigrationScore:
    score: int = 0
    reasons: list[str] = field(default_factory=list)


@dataclass(slots=True)
class _ScoringContext:
    """Per-call attribute lookups for one entity type."""

    db: Session
    entity_type_id: int
    _attributes: dict[str, Attribute | None] = field(default_factory=dict)

    def attribute(self, code: str) -> Attribute | None:
        if code not in self._attributes:
            self._attributes[code] = get_attribute_by_code(self.db, self.entity_type_id, code)
        return self._attributes[code]


def calculate_migration_score(
    db: Session,
    entity: CatalogEntity,
    rule: MigrationRule,
    criteria: Iterable[str] | None = None,
) -> int:
    """Score (0-100) of how well an entity fits a rule's target set."""

    context = _ScoringContext(db=db, entity_type_id=entity.entity_type_id)
    return _score_entity(context, entity, rule, criteria).score


def find_migration_candidates(
    db: Session,
    target_set_id: int,
    source_set_id: int | None = None,
    criteria: Iterable[str] | None = None,
) -> list[MigrationCandidate]:
    """Entities outside the target set that score above zero for it, best first."""

    target_set = get_attribute_set(db, target_set_id)
    if target_set is None:
        logger.warning("migration.unknown_target_set target_set_id=%d", target_set_id)
        return []
    rule = MIGRATION_RULES.get(target_set.name)
    if rule is None:
        return []

    stmt = select(CatalogEntity).where(CatalogEntity.entity_type_id == target_set.entity_type_id)
    if source_set_id is not None:
        stmt = stmt.where(CatalogEntity.attribute_set_id == source_set_id)
    else:
        stmt = stmt.where(CatalogEntity.attribute_set_id != target_set_id)

    started = perf_counter()
    wanted = list(criteria or [])
    context = _ScoringContext(db=db, entity_type_id=target_set.entity_type_id)
    candidates: list[MigrationCandidate] = []
    for entity in db.scalars(stmt.order_by(CatalogEntity.id.asc())):
        scored = _score_entity(context, entity, rule, wanted)
        if scored.score <= 0:
            continue
        candidates.append(
            MigrationCandidate(
                entity_id=entity.id,
                sku=entity.sku,
                current_set_id=entity.attribute_set_id,
                target_set_id=target_set.id,
                target_set_name=target_set.name,
                score=scored.score,
                reasons=scored.reasons,
            )
        )

    candidates.sort(key=lambda item: item.score, reverse=True)
    logger.info(
        "migration.candidates target_set_id=%d source_set_id=%s criteria=%s candidates=%d total_ms=%.2f",
        target_set_id,
        source_set_id,
        wanted,
        len(candidates),
        (perf_counter() - started) * 1000.0,
    )
    return candidates


def preview_migration(db: Session, entity_ids: Sequence[int], target_set_id: int) -> MigrationPreview:
    """Attribute membership diff for moving each entity into the target set."""

    target_set = get_attribute_set(db, target_set_id)
    if target_set is None:
        return MigrationPreview(error="Target attribute set not found")

    target_codes = set_member_codes(db, target_set.id)
    target_lookup = set(target_codes)
    preview = MigrationPreview(
        target_set=TargetSetInfo(id=target_set.id, name=target_set.name, attribute_count=len(target_codes)),
        summary=MigrationPreviewSummary(total=len(entity_ids)),
    )
    context = _ScoringContext(db=db, entity_type_id=target_set.entity_type_id)
    member_cache: dict[int, list[str]] = {}
    for entity_id in entity_ids:
        entity = db.get(CatalogEntity, entity_id)
        if entity is None:
            preview.not_found.append(entity_id)
            preview.summary.not_found += 1
            continue
        if entity.attribute_set_id not in member_cache:
            member_cache[entity.attribute_set_id] = set_member_codes(db, entity.attribute_set_id)
        current_codes = member_cache[entity.attribute_set_id]
        current_lookup = set(current_codes)

        lost = [code for code in current_codes if code not in target_lookup]
        gained = [code for code in target_codes if code not in current_lookup]
        lost_with_values = [
            code
            for code in lost
            if (attribute := context.attribute(code)) is not None and entity_has_value(db, entity.id, attribute)
        ]
        has_loss = bool(lost_with_values)
        preview.products.append(
            EntityMigrationPreview(
                entity_id=entity.id,
                sku=entity.sku,
                current_set_id=entity.attribute_set_id,
                lost_attributes=len(lost),
                lost_with_values=lost_with_values,
                gained_attributes=len(gained),
                has_data_loss_warning=has_loss,
            )
        )
        if has_loss:
            preview.summary.data_loss_warning += 1
        else:
            preview.summary.safe += 1
    return preview


def execute_migration(
    db: Session,
    entity_ids: Sequence[int],
    target_set_id: int,
    preserve_values: bool = True,
) -> MigrationResult:
    """Move entities into the target set in one transaction.

    Per-entity failures are recorded and the batch continues; anything else
    rolls the whole batch back and propagates. With `preserve_values=False`
    stored values of attributes outside the target set are removed.
    """

    target_set = get_attribute_set(db, target_set_id)
    if target_set is None:
        raise NotFoundError(f"Target attribute set {target_set_id} not found")

    started = perf_counter()
    logger.info(
        "migration.started entities=%d target_set_id=%d preserve_values=%s",
        len(entity_ids),
        target_set_id,
        preserve_values,
    )
    result = MigrationResult()
    try:
        for entity_id in entity_ids:
            entity = db.get(CatalogEntity, entity_id)
            if entity is None:
                result.failed.append(FailedEntity(entity_id=entity_id, error="Entity not found"))
                continue
            if entity.attribute_set_id == target_set.id:
                result.skipped.append(SkippedEntity(entity_id=entity_id, reason="Already in target set"))
                continue
            if entity.entity_type_id != target_set.entity_type_id:
                result.failed.append(
                    FailedEntity(entity_id=entity_id, error="Target set belongs to another entity type")
                )
                continue

            from_set = entity.attribute_set_id
            try:
                # A failed entity rolls back to this savepoint and the batch carries on.
                with db.begin_nested():
                    entity.attribute_set_id = target_set.id
                    values_removed = 0 if preserve_values else _remove_foreign_values(db, entity.id, target_set.id)
                    db.flush()
            except Exception as exc:
                error = sanitize_error(exc)
                logger.warning("migration.entity_failed entity_id=%d error=%s", entity_id, error)
                result.failed.append(FailedEntity(entity_id=entity_id, error=error))
                continue
            result.migrated.append(
                MigratedEntity(
                    entity_id=entity_id,
                    from_set=from_set,
                    to_set=target_set.id,
                    values_removed=values_removed,
                )
            )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(
            "migration.failed target_set_id=%d elapsed_ms=%.2f",
            target_set_id,
            (perf_counter() - started) * 1000.0,
        )
        raise

    logger.info(
        "migration.completed target_set_id=%d migrated=%d failed=%d skipped=%d total_ms=%.2f",
        target_set_id,
        len(result.migrated),
        len(result.failed),
        len(result.skipped),
        (perf_counter() - started) * 1000.0,
    )
    return result


def find_misassigned_products(
    db: Session,
    entity_type_code: str | None = None,
    *,
    settings: Settings | None = None,
) -> list[MisassignedEntity]:
    """Entities in the default set that clearly belong to a rule's target set."""

    settings = settings or get_settings()
    entity_type = resolve_entity_type(db, entity_type_code or settings.default_entity_type)
    if entity_type is None:
        return []
    default_set = _default_set(db, entity_type.id, entity_type.default_attribute_set_id)
    if default_set is None:
        return []

    entities = list(
        db.scalars(
            select(CatalogEntity)
            .where(
                CatalogEntity.entity_type_id == entity_type.id,
                CatalogEntity.attribute_set_id == default_set.id,
            )
            .order_by(CatalogEntity.id.asc())
        )
    )
    context = _ScoringContext(db=db, entity_type_id=entity_type.id)
    misassigned: list[MisassignedEntity] = []
    for set_name, rule in MIGRATION_RULES.items():
        target_set = get_attribute_set_by_name(db, entity_type.id, set_name)
        if target_set is None:
            continue
        for entity in entities:
            scored = _score_entity(context, entity, rule)
            if scored.score < MISASSIGNED_MIN_SCORE:
                continue
            misassigned.append(
                MisassignedEntity(
                    entity_id=entity.id,
                    sku=entity.sku,
                    current_set=default_set.name,
                    suggested_set=set_name,
                    suggested_set_id=target_set.id,
                    confidence=scored.score,
                    reasons=scored.reasons,
                )
            )

    misassigned.sort(key=lambda item: item.confidence, reverse=True)
    return misassigned


def get_set_distribution(
    db: Session,
    entity_type_code: str | None = None,
    *,
    settings: Settings | None = None,
) -> list[SetDistributionRow]:
    settings = settings or get_settings()
    entity_type = resolve_entity_type(db, entity_type_code or settings.default_entity_type)
    if entity_type is None:
        return []

    product_count = func.count(CatalogEntity.id)
    stmt = (
        select(
            AttributeSet.id,
            AttributeSet.name,
            product_count,
            func.count(case((CatalogEntity.type_id == "simple", 1))),
            func.count(case((CatalogEntity.type_id == "configurable", 1))),
        )
        .outerjoin(CatalogEntity, CatalogEntity.attribute_set_id == AttributeSet.id)
        .where(AttributeSet.entity_type_id == entity_type.id)
        .group_by(AttributeSet.id, AttributeSet.name)
        .order_by(product_count.desc(), AttributeSet.id.asc())
    )
    rows = db.execute(stmt).all()
    total = sum(row[2] for row in rows)
    return [
        SetDistributionRow(
            set_id=set_id,
            set_name=name,
            product_count=count,
            simple_count=simple_count,
            configurable_count=configurable_count,
            percentage=round(count / total * 100, 2) if total > 0 else 0.0,
        )
        for set_id, name, count, simple_count, configurable_count in rows
    ]


def suggest_attribute_set(db: Session, entity_id: int) -> list[SetSuggestion]:
    """Positive-scoring rule sets for one entity, excluding its current set."""

    entity = db.get(CatalogEntity, entity_id)
    if entity is None:
        return []

    context = _ScoringContext(db=db, entity_type_id=entity.entity_type_id)
    suggestions: list[SetSuggestion] = []
    for set_name, rule in MIGRATION_RULES.items():
        attribute_set = get_attribute_set_by_name(db, entity.entity_type_id, set_name)
        if attribute_set is None or attribute_set.id == entity.attribute_set_id:
            continue
        scored = _score_entity(context, entity, rule)
        if scored.score > 0:
            suggestions.append(
                SetSuggestion(
                    set_id=attribute_set.id,
                    set_name=set_name,
                    score=scored.score,
                    reasons=scored.reasons,
                )
            )

    suggestions.sort(key=lambda item: item.score, reverse=True)
    return suggestions


def get_entity_categories(db: Session, entity_id: int) -> list[str]:
    return list(
        db.scalars(
            select(EntityCategory.category_name)
            .where(EntityCategory.entity_id == entity_id)
            .order_by(EntityCategory.id.asc())
        )
    )


def get_entity_manufacturer(db: Session, entity_id: int, manufacturer: Attribute | None) -> str | None:
    """Base-scope option label of the entity's manufacturer value."""

    if manufacturer is None or manufacturer.backend_type != BackendType.INT.value:
        return None
    return db.scalar(
        select(AttributeOptionValue.value)
        .join(EntityIntValue, EntityIntValue.value == AttributeOptionValue.option_id)
        .where(
            EntityIntValue.entity_id == entity_id,
            EntityIntValue.attribute_id == manufacturer.id,
            AttributeOptionValue.store_id == BASE_STORE_ID,
        )
        .order_by(EntityIntValue.store_id.asc())
        .limit(1)
    )


def _score_entity(
    context: _ScoringContext,
    entity: CatalogEntity,
    rule: MigrationRule,
    criteria: Iterable[str] | None = None,
) -> MigrationScore:
    wanted = set(criteria or ()) or set(CRITERIA)
    db = context.db
    scored = MigrationScore()

    if CRITERION_ATTRIBUTE in wanted:
        for code in rule.attributes:
            attribute = context.attribute(code)
            if attribute is not None and entity_has_value(db, entity.id, attribute):
                scored.score += ATTRIBUTE_POINTS
                scored.reasons.append(f"Has '{code}' attribute value")

    if CRITERION_MANUFACTURER in wanted and rule.manufacturers:
        manufacturer = get_entity_manufacturer(db, entity.id, context.attribute(MANUFACTURER_CODE))
        if manufacturer is not None and manufacturer in rule.manufacturers:
            scored.score += MANUFACTURER_POINTS
            scored.reasons.append(f"Manufacturer: {manufacturer}")

    if CRITERION_CATEGORY in wanted and rule.categories:
        matched = _first_category_match(get_entity_categories(db, entity.id), rule.categories)
        if matched is not None:
            scored.score += CATEGORY_POINTS
            scored.reasons.append(f"Category matches: {matched}")

    if CRITERION_SKU_PATTERN in wanted:
        prefix = next((pattern for pattern in rule.sku_patterns if entity.sku.startswith(pattern)), None)
        if prefix is not None:
            scored.score += SKU_PATTERN_POINTS
            scored.reasons.append(f"SKU matches pattern: {prefix}")

    scored.score = min(MAX_SCORE, scored.score)
    return scored


def _first_category_match(categories: Sequence[str], patterns: Sequence[str]) -> str | None:
    for pattern in patterns:
        for category in categories:
            if pattern in category.lower():
                return category
    return None


def _default_set(db: Session, entity_type_id: int, default_set_id: int | None) -> AttributeSet | None:
    if default_set_id is not None:
        attribute_set = get_attribute_set(db, default_set_id)
        if attribute_set is not None:
            return attribute_set
    return get_attribute_set_by_name(db, entity_type_id, DEFAULT_SET_NAME)


def _remove_foreign_values(db: Session, entity_id: int, target_set_id: int) -> int:
    """Delete the entity's values for attributes outside the target set."""

    kept = select(AttributeSetMember.attribute_id).where(AttributeSetMember.attribute_set_id == target_set_id)
    removed = 0
    for backend in VALUE_BACKENDS.values():
        if not value_table_exists(db, backend):
            continue
        model = backend.model
        outcome = db.execute(
            delete(model).where(model.entity_id == entity_id, model.attribute_id.not_in(kept))
        )
        removed += outcome.rowcount or 0
    return removed
