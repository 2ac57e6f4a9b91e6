"""Format chaos analysis schemas."""

from typing import Literal

from pydantic import BaseModel, Field


class UnitIssue(BaseModel):
    """Mixed unit tokens observed within one unit category."""

    found_units: list[str]
    counts: dict[str, int]
    issue: str = "Mixed units detected"


class SpacingIssue(BaseModel):
    """Both "100 mm" and "100mm" styles observed."""

    issue: str = "Inconsistent spacing between numbers and units"
    with_space_count: int
    without_space_count: int
    examples: dict[str, list[str]]


class TemperatureFormatIssue(BaseModel):
    """More than one temperature notation observed."""

    formats_found: dict[str, int]
    examples: dict[str, str]
    issue: str = "Multiple temperature formats detected"


class AttributeChaosReport(BaseModel):
    """Chaos analysis of one attribute's distinct values."""

    attribute_code: str
    chaos_score: float = 0.0
    value_count: int = 0
    unit_issues: dict[str, UnitIssue] = Field(default_factory=dict)
    spacing_issues: SpacingIssue | None = None
    temperature_formats: TemperatureFormatIssue | None = None
    examples: list[str] = Field(default_factory=list)
    note: str | None = None


class ChaosScan(BaseModel):
    """Chaos scan across the text attributes of an entity type."""

    analyzed: int = 0
    chaotic: int = 0
    attributes: list[AttributeChaosReport] = Field(default_factory=list)
    error: str | None = None


class StandardizationRule(BaseModel):
    """Advisory rule derived from one fired detector."""

    type: Literal["unit_standardization", "spacing_standardization", "temperature_standardization"]
    description: str
    category: str | None = None
    target_unit: str | None = None
    format: Literal["with_space", "without_space"] | None = None
    target_format: str | None = None


class StandardizationSuggestion(BaseModel):
    suggestion: str
    chaos_score: float = 0.0
    rules: list[StandardizationRule] = Field(default_factory=list)
