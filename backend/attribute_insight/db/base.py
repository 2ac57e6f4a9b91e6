"""SQLAlchemy metadata registry import for Alembic."""

from attribute_insight.models import (
    ApprovalProposal,
    Attribute,
    AttributeMergeLog,
    AttributeOption,
    AttributeOptionValue,
    AttributeSet,
    AttributeSetMember,
    CatalogEntity,
    EntityCategory,
    EntityDatetimeValue,
    EntityDecimalValue,
    EntityIntValue,
    EntityTextValue,
    EntityType,
    EntityVarcharValue,
)
from attribute_insight.models.base import Base

__all__ = [
    "Base",
    "EntityType",
    "Attribute",
    "AttributeOption",
    "AttributeOptionValue",
    "AttributeSet",
    "AttributeSetMember",
    "CatalogEntity",
    "EntityCategory",
    "EntityVarcharValue",
    "EntityTextValue",
    "EntityIntValue",
    "EntityDecimalValue",
    "EntityDatetimeValue",
    "ApprovalProposal",
    "AttributeMergeLog",
]
