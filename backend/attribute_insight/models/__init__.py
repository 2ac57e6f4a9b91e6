"""ORM models package exports."""

from attribute_insight.models.approval_proposal import ApprovalProposal
from attribute_insight.models.attribute import Attribute
from attribute_insight.models.attribute_merge_log import AttributeMergeLog
from attribute_insight.models.attribute_option import AttributeOption, AttributeOptionValue
from attribute_insight.models.attribute_set import AttributeSet, AttributeSetMember
from attribute_insight.models.catalog_entity import CatalogEntity, EntityCategory
from attribute_insight.models.entity_type import EntityType
from attribute_insight.models.entity_value import (
    EntityDatetimeValue,
    EntityDecimalValue,
    EntityIntValue,
    EntityTextValue,
    EntityVarcharValue,
)

__all__ = [
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
