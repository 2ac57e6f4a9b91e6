"""Attribute merge schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from attribute_insight.schemas.attributes import AttributeDescriptor


class ConflictStrategy(str, Enum):
    """How a source value is reconciled with an existing target value."""

    KEEP_TARGET = "keep_target"
    KEEP_SOURCE = "keep_source"
    CONCATENATE = "concatenate"
    SKIP = "skip"
    FILL_EMPTY = "fill_empty"


class CompatibilityResult(BaseModel):
    compatible: bool
    reason: str | None = None


class DataMigrationInfo(BaseModel):
    value_count: int = 0
    conflict_count: int = 0
    note: str | None = None


class OptionsMergeInfo(BaseModel):
    source_options: int
    target_options: int
    will_map: int
    will_create: int
    new_options: list[str]


class MergePreviewSummary(BaseModel):
    total_sources: int
    compatible_sources: int
    total_values_to_migrate: int
    has_warnings: bool


class MergePreview(BaseModel):
    """Read-only dry run of a merge."""

    target: AttributeDescriptor | None = None
    sources: list[AttributeDescriptor] = Field(default_factory=list)
    compatibility: dict[int, CompatibilityResult] = Field(default_factory=dict)
    data_migration: dict[int, DataMigrationInfo] = Field(default_factory=dict)
    options_merge: dict[int, OptionsMergeInfo] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    summary: MergePreviewSummary | None = None
    error: str | None = None


class MergedSource(BaseModel):
    source_id: int
    source_code: str
    values_migrated: int
    options_merged: int


class FailedItem(BaseModel):
    id: int
    reason: str


class MergeResult(BaseModel):
    """Outcome of an executed merge batch."""

    merged: list[MergedSource] = Field(default_factory=list)
    failed: list[FailedItem] = Field(default_factory=list)
    values_migrated: int = 0
    options_merged: int = 0
    sources_deleted: list[int] = Field(default_factory=list)
    merge_log_id: int | None = None


class OptionMergeCounts(BaseModel):
    mapped: int = 0
    created: int = 0


class RollbackResult(BaseModel):
    merge_log_id: int
    rolled_back: bool
    values_restored: int = 0
    options_removed: int = 0
    sources_restored: list[int] = Field(default_factory=list)


class MergeLogRead(BaseModel):
    """Serialized merge log without the raw snapshot."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    target_attribute_id: int
    source_attribute_ids_json: list[int]
    conflict_strategy: str
    delete_source: bool
    result_json: dict[str, object]
    created_at: datetime
    rolled_back_at: datetime | None


class MergePreviewRequest(BaseModel):
    source_attribute_ids: list[int] = Field(min_length=1)
    target_attribute_id: int = Field(ge=1)


class MergeExecuteRequest(MergePreviewRequest):
    conflict_strategy: ConflictStrategy = ConflictStrategy.KEEP_TARGET
    delete_source: bool = False
