"""Attribute fill-rate analysis."""

from __future__ import annotations

import logging
from collections import defaultdict
from time import perf_counter

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from attribute_insight.config import Settings, get_settings
from attribute_insight.eav.backends import BackendType, value_backend_for, value_table_exists
from attribute_insight.eav.catalog import get_attribute_by_code, list_attributes, resolve_entity_type
from attribute_insight.models.attribute import Attribute
from attribute_insight.models.attribute_option import BASE_STORE_ID, AttributeOptionValue
from attribute_insight.models.attribute_set import AttributeSet
from attribute_insight.models.catalog_entity import CatalogEntity
from attribute_insight.models.entity_value import EntityIntValue
from attribute_insight.schemas.fill_rate import (
    AttributeFillRate,
    FillRateSummary,
    ManufacturerFillRate,
    SetFillRates,
)

logger = logging.getLogger(__name__)

UNUSED_THRESHOLD = 0.01
MANUFACTURER_CODE = "manufacturer"


def get_attribute_fill_rates(
    db: Session,
    entity_type_code: str,
    attribute_set_id: int | None = None,
    *,
    settings: Settings | None = None,
) -> dict[int, AttributeFillRate]:
    """Fill rate per attribute keyed by attribute id, worst first.

    Static attributes and attributes whose value table does not exist are
    skipped. An empty scope yields an empty mapping.
    """

    settings = settings or get_settings()
    started = perf_counter()
    entity_type = resolve_entity_type(db, entity_type_code)
    if entity_type is None:
        logger.warning("fill_rate.unknown_entity_type entity_type=%s", entity_type_code)
        return {}

    total = count_entities(db, entity_type.id, attribute_set_id)
    if total == 0:
        return {}

    attributes = list_attributes(
        db,
        entity_type.id,
        include_system=not settings.exclude_system_attributes,
        attribute_set_id=attribute_set_id,
    )
    rates: list[AttributeFillRate] = []
    for attribute in attributes:
        filled = count_filled(db, attribute, attribute_set_id)
        if filled is None:
            continue
        rate = filled / total * 100
        rates.append(
            AttributeFillRate(
                attribute_id=attribute.id,
                code=attribute.attribute_code,
                label=attribute.frontend_label or attribute.attribute_code,
                type=attribute.frontend_input,
                backend_type=attribute.backend_type,
                is_user_defined=attribute.is_user_defined,
                filled=filled,
                total=total,
                rate=round(rate, 2),
                status=settings.fill_rate_status(rate),
            )
        )

    rates.sort(key=lambda item: item.rate)
    logger.info(
        "fill_rate.computed entity_type=%s attribute_set_id=%s entities=%d attributes=%d total_ms=%.2f",
        entity_type_code,
        attribute_set_id,
        total,
        len(rates),
        (perf_counter() - started) * 1000.0,
    )
    return {item.attribute_id: item for item in rates}


def get_fill_rates_by_set(
    db: Session,
    entity_type_code: str,
    *,
    settings: Settings | None = None,
) -> dict[int, SetFillRates]:
    """Fill rates per attribute set, largest sets first."""

    entity_type = resolve_entity_type(db, entity_type_code)
    if entity_type is None:
        return {}

    sets = db.scalars(
        select(AttributeSet)
        .where(AttributeSet.entity_type_id == entity_type.id)
        .order_by(AttributeSet.id.asc())
    )
    results = [
        SetFillRates(
            set_id=attribute_set.id,
            name=attribute_set.name,
            product_count=count_entities(db, entity_type.id, attribute_set.id),
            attributes=get_attribute_fill_rates(db, entity_type_code, attribute_set.id, settings=settings),
        )
        for attribute_set in sets
    ]
    results.sort(key=lambda item: item.product_count, reverse=True)
    return {item.set_id: item for item in results}


def get_critical_attributes(
    db: Session,
    entity_type_code: str,
    threshold: float,
    *,
    settings: Settings | None = None,
) -> dict[int, AttributeFillRate]:
    """Attributes whose fill rate is below `threshold` percent."""

    rates = get_attribute_fill_rates(db, entity_type_code, settings=settings)
    return {attribute_id: item for attribute_id, item in rates.items() if item.rate < threshold}


def get_unused_attributes(
    db: Session,
    entity_type_code: str,
    *,
    settings: Settings | None = None,
) -> dict[int, AttributeFillRate]:
    """Attributes with effectively no values."""

    return get_critical_attributes(db, entity_type_code, UNUSED_THRESHOLD, settings=settings)


def get_summary_statistics(
    db: Session,
    entity_type_code: str,
    *,
    settings: Settings | None = None,
) -> FillRateSummary:
    settings = settings or get_settings()
    rates = get_attribute_fill_rates(db, entity_type_code, settings=settings)
    if not rates:
        return FillRateSummary()

    summary = FillRateSummary(total_attributes=len(rates))
    total_rate = 0.0
    for item in rates.values():
        total_rate += item.rate
        match item.status:
            case "critical":
                summary.critical += 1
            case "warning":
                summary.warning += 1
            case _:
                summary.healthy += 1
    summary.avg_fill_rate = round(total_rate / len(rates), 2)
    return summary


def get_fill_rates_by_manufacturer(
    db: Session,
    attribute_code: str,
    entity_type_code: str | None = None,
    *,
    settings: Settings | None = None,
) -> list[ManufacturerFillRate]:
    """Fill rate of one attribute among the entities of each manufacturer."""

    settings = settings or get_settings()
    entity_type = resolve_entity_type(db, entity_type_code or settings.default_entity_type)
    if entity_type is None:
        return []
    manufacturer = get_attribute_by_code(db, entity_type.id, MANUFACTURER_CODE)
    target = get_attribute_by_code(db, entity_type.id, attribute_code)
    if manufacturer is None or target is None or manufacturer.backend_type != BackendType.INT.value:
        return []
    backend = value_backend_for(target.backend_type)
    if backend is None or not value_table_exists(db, backend):
        return []

    pairs = db.execute(
        select(EntityIntValue.entity_id, AttributeOptionValue.value)
        .join(
            AttributeOptionValue,
            (AttributeOptionValue.option_id == EntityIntValue.value)
            & (AttributeOptionValue.store_id == BASE_STORE_ID),
        )
        .where(EntityIntValue.attribute_id == manufacturer.id, EntityIntValue.store_id == BASE_STORE_ID)
    ).all()
    entities_by_manufacturer: dict[str, set[int]] = defaultdict(set)
    for entity_id, label in pairs:
        entities_by_manufacturer[label].add(entity_id)
    if not entities_by_manufacturer:
        return []

    model = backend.model
    filled_ids = set(
        db.scalars(
            select(model.entity_id)
            .where(model.attribute_id == target.id, backend.filled_condition())
            .distinct()
        )
    )
    results: list[ManufacturerFillRate] = []
    for label, entity_ids in entities_by_manufacturer.items():
        filled = len(entity_ids & filled_ids)
        rate = filled / len(entity_ids) * 100
        results.append(
            ManufacturerFillRate(
                manufacturer=label,
                filled=filled,
                total=len(entity_ids),
                rate=round(rate, 2),
                status=settings.fill_rate_status(rate),
            )
        )
    results.sort(key=lambda item: (item.rate, item.manufacturer))
    return results


def count_entities(db: Session, entity_type_id: int, attribute_set_id: int | None = None) -> int:
    stmt = select(func.count(CatalogEntity.id)).where(CatalogEntity.entity_type_id == entity_type_id)
    if attribute_set_id is not None:
        stmt = stmt.where(CatalogEntity.attribute_set_id == attribute_set_id)
    return int(db.scalar(stmt) or 0)


def count_filled(db: Session, attribute: Attribute, attribute_set_id: int | None = None) -> int | None:
    """Distinct entities with a non-empty value; None when the attribute has no value table."""

    backend = value_backend_for(attribute.backend_type)
    if backend is None or not value_table_exists(db, backend):
        return None
    model = backend.model
    stmt = select(func.count(func.distinct(model.entity_id))).where(
        model.attribute_id == attribute.id,
        backend.filled_condition(),
    )
    if attribute_set_id is not None:
        stmt = stmt.join(
            CatalogEntity,
            (CatalogEntity.id == model.entity_id) & (CatalogEntity.attribute_set_id == attribute_set_id),
        )
    return int(db.scalar(stmt) or 0)
