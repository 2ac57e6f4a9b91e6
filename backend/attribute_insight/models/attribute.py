"""EAV attribute metadata model."""

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from attribute_insight.models.base import Base, IdMixin

SELECT_INPUTS = frozenset({"select", "multiselect"})


class Attribute(Base, IdMixin):
    """Attribute definition; `backend_type` selects the value table family."""

    __tablename__ = "eav_attributes"
    __table_args__ = (UniqueConstraint("entity_type_id", "attribute_code"),)

    entity_type_id: Mapped[int] = mapped_column(
        ForeignKey("eav_entity_types.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    attribute_code: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    frontend_label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    frontend_input: Mapped[str] = mapped_column(String(32), default="text", nullable=False)
    backend_type: Mapped[str] = mapped_column(String(16), default="varchar", nullable=False)
    is_user_defined: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def is_select(self) -> bool:
        return self.frontend_input in SELECT_INPUTS
