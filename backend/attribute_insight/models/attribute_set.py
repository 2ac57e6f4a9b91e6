"""Attribute set and membership models."""

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from attribute_insight.models.base import Base, IdMixin


class AttributeSet(Base, IdMixin):
    """Named collection of attributes an entity is expected to carry."""

    __tablename__ = "eav_attribute_sets"
    __table_args__ = (UniqueConstraint("entity_type_id", "name"),)

    entity_type_id: Mapped[int] = mapped_column(
        ForeignKey("eav_entity_types.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class AttributeSetMember(Base, IdMixin):
    """Ordered membership of an attribute in a set."""

    __tablename__ = "eav_attribute_set_members"
    __table_args__ = (UniqueConstraint("attribute_set_id", "attribute_id"),)

    attribute_set_id: Mapped[int] = mapped_column(
        ForeignKey("eav_attribute_sets.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    attribute_id: Mapped[int] = mapped_column(
        ForeignKey("eav_attributes.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
