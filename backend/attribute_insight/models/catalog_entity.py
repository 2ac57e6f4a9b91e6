"""Catalog entity rows and their category links."""

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from attribute_insight.models.base import Base, CreatedAtMixin, IdMixin


class CatalogEntity(Base, IdMixin, CreatedAtMixin):
    """Entity (typically a product) whose attribute values live in value tables."""

    __tablename__ = "catalog_entities"

    entity_type_id: Mapped[int] = mapped_column(
        ForeignKey("eav_entity_types.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    sku: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    type_id: Mapped[str] = mapped_column(String(32), default="simple", nullable=False)
    attribute_set_id: Mapped[int] = mapped_column(
        ForeignKey("eav_attribute_sets.id"),
        index=True,
        nullable=False,
    )


class EntityCategory(Base, IdMixin):
    """Category name association used as a set-migration signal."""

    __tablename__ = "catalog_entity_categories"

    entity_id: Mapped[int] = mapped_column(
        ForeignKey("catalog_entities.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    category_name: Mapped[str] = mapped_column(String(255), nullable=False)
