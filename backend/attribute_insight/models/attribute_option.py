"""Select/multiselect option models."""

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from attribute_insight.models.base import Base, IdMixin

BASE_STORE_ID = 0


class AttributeOption(Base, IdMixin):
    """Option identity for a select/multiselect attribute."""

    __tablename__ = "eav_attribute_options"

    attribute_id: Mapped[int] = mapped_column(
        ForeignKey("eav_attributes.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class AttributeOptionValue(Base, IdMixin):
    """Localized option label for one store scope (store 0 is the base scope)."""

    __tablename__ = "eav_attribute_option_values"

    option_id: Mapped[int] = mapped_column(
        ForeignKey("eav_attribute_options.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    store_id: Mapped[int] = mapped_column(Integer, default=BASE_STORE_ID, nullable=False)
    value: Mapped[str] = mapped_column(String(255), nullable=False)
