"""Shared catalog lookups used by the analysis and mutation services."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from attribute_insight.eav.backends import value_backend_for, value_table_exists
from attribute_insight.models.attribute import Attribute
from attribute_insight.models.attribute_option import BASE_STORE_ID, AttributeOption, AttributeOptionValue
from attribute_insight.models.attribute_set import AttributeSet, AttributeSetMember
from attribute_insight.models.entity_type import EntityType
from attribute_insight.schemas.attributes import AttributeDescriptor


def resolve_entity_type(db: Session, entity_type_code: str) -> EntityType | None:
    """Look up an entity type by code; callers pass the result along explicitly."""

    return db.scalar(select(EntityType).where(EntityType.code == entity_type_code))


def get_attribute(db: Session, attribute_id: int) -> Attribute | None:
    return db.scalar(select(Attribute).where(Attribute.id == attribute_id))


def get_attribute_by_code(db: Session, entity_type_id: int, attribute_code: str) -> Attribute | None:
    return db.scalar(
        select(Attribute).where(
            Attribute.entity_type_id == entity_type_id,
            Attribute.attribute_code == attribute_code,
        )
    )


def list_attributes(
    db: Session,
    entity_type_id: int,
    *,
    include_system: bool = False,
    attribute_set_id: int | None = None,
) -> list[Attribute]:
    """List attributes of an entity type ordered by code, optionally set-scoped."""

    stmt = select(Attribute).where(Attribute.entity_type_id == entity_type_id)
    if not include_system:
        stmt = stmt.where(Attribute.is_user_defined.is_(True))
    if attribute_set_id is not None:
        stmt = stmt.join(
            AttributeSetMember,
            (AttributeSetMember.attribute_id == Attribute.id)
            & (AttributeSetMember.attribute_set_id == attribute_set_id),
        )
    return list(db.scalars(stmt.order_by(Attribute.attribute_code.asc(), Attribute.id.asc())))


def get_attribute_set(db: Session, attribute_set_id: int) -> AttributeSet | None:
    return db.scalar(select(AttributeSet).where(AttributeSet.id == attribute_set_id))


def get_attribute_set_by_name(db: Session, entity_type_id: int, name: str) -> AttributeSet | None:
    return db.scalar(
        select(AttributeSet).where(
            AttributeSet.entity_type_id == entity_type_id,
            AttributeSet.name == name,
        )
    )


def set_member_codes(db: Session, attribute_set_id: int) -> list[str]:
    """Attribute codes of a set in membership order."""

    stmt = (
        select(Attribute.attribute_code)
        .join(AttributeSetMember, AttributeSetMember.attribute_id == Attribute.id)
        .where(AttributeSetMember.attribute_set_id == attribute_set_id)
        .order_by(AttributeSetMember.sort_order.asc(), AttributeSetMember.id.asc())
    )
    return list(db.scalars(stmt))


def base_option_labels(db: Session, attribute_id: int) -> list[tuple[int, str]]:
    """(option id, base-scope label) pairs for a select attribute."""

    stmt = (
        select(AttributeOption.id, AttributeOptionValue.value)
        .join(AttributeOptionValue, AttributeOptionValue.option_id == AttributeOption.id)
        .where(
            AttributeOption.attribute_id == attribute_id,
            AttributeOptionValue.store_id == BASE_STORE_ID,
        )
        .order_by(AttributeOption.sort_order.asc(), AttributeOption.id.asc())
    )
    return [(option_id, label) for option_id, label in db.execute(stmt).all()]


def entity_has_value(db: Session, entity_id: int, attribute: Attribute) -> bool:
    """True when the entity holds a non-empty value for the attribute in any store."""

    backend = value_backend_for(attribute.backend_type)
    if backend is None or not value_table_exists(db, backend):
        return False
    model = backend.model
    found = db.scalar(
        select(model.id)
        .where(
            model.entity_id == entity_id,
            model.attribute_id == attribute.id,
            backend.filled_condition(),
        )
        .limit(1)
    )
    return found is not None


def describe_attribute(attribute: Attribute) -> AttributeDescriptor:
    return AttributeDescriptor(
        id=attribute.id,
        code=attribute.attribute_code,
        label=attribute.frontend_label,
        type=attribute.frontend_input,
        backend_type=attribute.backend_type,
    )
