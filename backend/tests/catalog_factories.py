"""Shared in-memory database setup and catalog row builders for tests."""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine, event, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from attribute_insight.config import Settings
from attribute_insight.eav.backends import value_backend_for
from attribute_insight.models.attribute import Attribute
from attribute_insight.models.attribute_option import BASE_STORE_ID, AttributeOption, AttributeOptionValue
from attribute_insight.models.attribute_set import AttributeSet, AttributeSetMember
from attribute_insight.models.base import Base
from attribute_insight.models.catalog_entity import CatalogEntity, EntityCategory
from attribute_insight.models.entity_type import EntityType

import attribute_insight.db.base  # noqa: F401  registers every model on Base.metadata

ENTITY_TYPE = "catalog_product"


def make_engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN on its own; emit it explicitly so SAVEPOINTs nest inside the transaction.
    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(connection) -> None:
        connection.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    return engine


def make_session_factory(engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def reset_tables(db: Session) -> None:
    for table in reversed(Base.metadata.sorted_tables):
        db.execute(table.delete())
    db.commit()


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "database_url": "sqlite+pysqlite:///:memory:",
        "approval_notify_email": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def add_entity_type(db: Session, code: str = ENTITY_TYPE) -> EntityType:
    entity_type = EntityType(code=code, entity_label=code)
    db.add(entity_type)
    db.flush()
    return entity_type


def add_attribute(
    db: Session,
    entity_type: EntityType,
    code: str,
    *,
    label: str | None = None,
    frontend_input: str = "text",
    backend_type: str = "varchar",
    is_user_defined: bool = True,
) -> Attribute:
    attribute = Attribute(
        entity_type_id=entity_type.id,
        attribute_code=code,
        frontend_label=label,
        frontend_input=frontend_input,
        backend_type=backend_type,
        is_user_defined=is_user_defined,
    )
    db.add(attribute)
    db.flush()
    return attribute


def add_option(db: Session, attribute: Attribute, label: str, *, store_labels: dict[int, str] | None = None) -> int:
    option = AttributeOption(attribute_id=attribute.id, sort_order=0)
    db.add(option)
    db.flush()
    db.add(AttributeOptionValue(option_id=option.id, store_id=BASE_STORE_ID, value=label))
    for store_id, store_label in (store_labels or {}).items():
        db.add(AttributeOptionValue(option_id=option.id, store_id=store_id, value=store_label))
    db.flush()
    return option.id


def add_set(db: Session, entity_type: EntityType, name: str, members: list[Attribute] | None = None) -> AttributeSet:
    attribute_set = AttributeSet(entity_type_id=entity_type.id, name=name)
    db.add(attribute_set)
    db.flush()
    for sort_order, attribute in enumerate(members or []):
        db.add(AttributeSetMember(attribute_set_id=attribute_set.id, attribute_id=attribute.id, sort_order=sort_order))
    db.flush()
    return attribute_set


def add_entity(
    db: Session,
    entity_type: EntityType,
    attribute_set: AttributeSet,
    sku: str,
    *,
    type_id: str = "simple",
    categories: tuple[str, ...] = (),
) -> CatalogEntity:
    entity = CatalogEntity(entity_type_id=entity_type.id, sku=sku, type_id=type_id, attribute_set_id=attribute_set.id)
    db.add(entity)
    db.flush()
    for category in categories:
        db.add(EntityCategory(entity_id=entity.id, category_name=category))
    db.flush()
    return entity


def set_value(db: Session, entity: CatalogEntity, attribute: Attribute, value: Any, store_id: int = BASE_STORE_ID) -> None:
    backend = value_backend_for(attribute.backend_type)
    assert backend is not None
    db.add(
        backend.model(
            attribute_id=attribute.id,
            entity_id=entity.id,
            store_id=store_id,
            value=backend.coerce(value),
        )
    )
    db.flush()


def get_value(db: Session, entity: CatalogEntity | int, attribute: Attribute | int, store_id: int = BASE_STORE_ID) -> Any:
    attribute_row = attribute if isinstance(attribute, Attribute) else db.get(Attribute, attribute)
    entity_id = entity if isinstance(entity, int) else entity.id
    backend = value_backend_for(attribute_row.backend_type)
    model = backend.model
    row = db.scalar(
        select(model).where(
            model.attribute_id == attribute_row.id,
            model.entity_id == entity_id,
            model.store_id == store_id,
        )
    )
    return None if row is None else row.value
