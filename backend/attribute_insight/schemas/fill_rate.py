"""Fill-rate analysis schemas."""

from typing import Literal

from pydantic import BaseModel

FillRateStatus = Literal["critical", "warning", "healthy"]


class AttributeFillRate(BaseModel):
    """Fill rate of one attribute within a scope."""

    attribute_id: int
    code: str
    label: str
    type: str
    backend_type: str
    is_user_defined: bool
    filled: int
    total: int
    rate: float
    status: FillRateStatus


class SetFillRates(BaseModel):
    """Fill rates of all attributes scoped to one attribute set."""

    set_id: int
    name: str
    product_count: int
    attributes: dict[int, AttributeFillRate]


class FillRateSummary(BaseModel):
    """Status bucket counts and mean rate across attributes."""

    total_attributes: int = 0
    avg_fill_rate: float = 0.0
    critical: int = 0
    warning: int = 0
    healthy: int = 0


class ManufacturerFillRate(BaseModel):
    """Fill rate of one attribute among entities of one manufacturer."""

    manufacturer: str
    filled: int
    total: int
    rate: float
    status: FillRateStatus
