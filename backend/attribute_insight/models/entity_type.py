"""EAV entity type model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from attribute_insight.models.base import Base, IdMixin


class EntityType(Base, IdMixin):
    """Entity type (product, category, customer) owning attributes and sets."""

    __tablename__ = "eav_entity_types"

    code: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    entity_label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    default_attribute_set_id: Mapped[int | None] = mapped_column(nullable=True)
