"""Per-backend-type attribute value tables."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from attribute_insight.models.base import Base, IdMixin


class EntityValueMixin(IdMixin):
    """Columns shared by every value table: (entity, attribute, store) -> value."""

    @declared_attr
    def attribute_id(cls) -> Mapped[int]:
        return mapped_column(
            ForeignKey("eav_attributes.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        )

    @declared_attr
    def entity_id(cls) -> Mapped[int]:
        return mapped_column(
            ForeignKey("catalog_entities.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        )

    store_id: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    @declared_attr.directive
    def __table_args__(cls) -> tuple:
        return (UniqueConstraint("attribute_id", "store_id", "entity_id"),)


class EntityVarcharValue(Base, EntityValueMixin):
    __tablename__ = "catalog_entity_varchar"

    value: Mapped[str | None] = mapped_column(String(255), nullable=True)


class EntityTextValue(Base, EntityValueMixin):
    __tablename__ = "catalog_entity_text"

    value: Mapped[str | None] = mapped_column(Text, nullable=True)


class EntityIntValue(Base, EntityValueMixin):
    __tablename__ = "catalog_entity_int"

    value: Mapped[int | None] = mapped_column(Integer, nullable=True)


class EntityDecimalValue(Base, EntityValueMixin):
    __tablename__ = "catalog_entity_decimal"

    value: Mapped[Decimal | None] = mapped_column(Numeric(20, 6), nullable=True)


class EntityDatetimeValue(Base, EntityValueMixin):
    __tablename__ = "catalog_entity_datetime"

    value: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
