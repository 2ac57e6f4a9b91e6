"""Attribute descriptor schemas shared by analysis and merge results."""

from pydantic import BaseModel, ConfigDict


class AttributeRef(BaseModel):
    """Minimal attribute identity used in duplicate groups."""

    id: int
    code: str
    label: str | None = None


class AttributeDescriptor(BaseModel):
    """Attribute identity plus input/backend types."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    label: str | None = None
    type: str
    backend_type: str
