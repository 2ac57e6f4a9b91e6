"""Duplicate detection schemas."""

from typing import Literal

from pydantic import BaseModel

from attribute_insight.schemas.attributes import AttributeDescriptor, AttributeRef

DuplicateGroupType = Literal["code_similarity", "label_similarity", "value_overlap", "known_pattern"]


class DuplicateGroup(BaseModel):
    """Attributes that likely represent the same concept."""

    type: DuplicateGroupType
    category: str | None = None
    attributes: list[AttributeRef]


class SimilarAttribute(BaseModel):
    """Attribute similar to a reference attribute, with readable reasons."""

    attribute_id: int
    code: str
    label: str | None = None
    similarity: float
    reasons: list[str]


class ValueOverlapDetail(BaseModel):
    """Option overlap between two attributes of the same input type."""

    compatible: bool
    overlap: float | None = None
    values_1: int | None = None
    values_2: int | None = None
    common: int | None = None
    note: str | None = None


class AttributeComparisonDetail(BaseModel):
    code_similarity: float
    label_similarity: float
    same_type: bool
    same_backend: bool
    value_overlap: ValueOverlapDetail


class AttributeComparison(BaseModel):
    """Side-by-side comparison of two attributes, or an error marker."""

    attribute_1: AttributeDescriptor | None = None
    attribute_2: AttributeDescriptor | None = None
    comparison: AttributeComparisonDetail | None = None
    recommendation: str | None = None
    error: str | None = None
