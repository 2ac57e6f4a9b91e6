"""Attribute set migration schemas."""

from pydantic import BaseModel, Field


class MigrationCandidate(BaseModel):
    entity_id: int
    sku: str
    current_set_id: int
    target_set_id: int
    target_set_name: str
    score: int
    reasons: list[str]


class TargetSetInfo(BaseModel):
    id: int
    name: str
    attribute_count: int


class EntityMigrationPreview(BaseModel):
    entity_id: int
    sku: str
    current_set_id: int
    lost_attributes: int
    lost_with_values: list[str]
    gained_attributes: int
    has_data_loss_warning: bool


class MigrationPreviewSummary(BaseModel):
    total: int = 0
    safe: int = 0
    data_loss_warning: int = 0
    not_found: int = 0


class MigrationPreview(BaseModel):
    """Before/after set membership diff for a batch of entities."""

    target_set: TargetSetInfo | None = None
    products: list[EntityMigrationPreview] = Field(default_factory=list)
    not_found: list[int] = Field(default_factory=list)
    summary: MigrationPreviewSummary = Field(default_factory=MigrationPreviewSummary)
    error: str | None = None


class MigratedEntity(BaseModel):
    entity_id: int
    from_set: int
    to_set: int
    values_removed: int = 0


class SkippedEntity(BaseModel):
    entity_id: int
    reason: str


class FailedEntity(BaseModel):
    entity_id: int
    error: str


class MigrationResult(BaseModel):
    migrated: list[MigratedEntity] = Field(default_factory=list)
    failed: list[FailedEntity] = Field(default_factory=list)
    skipped: list[SkippedEntity] = Field(default_factory=list)


class MisassignedEntity(BaseModel):
    entity_id: int
    sku: str
    current_set: str
    suggested_set: str
    suggested_set_id: int
    confidence: int
    reasons: list[str]


class SetDistributionRow(BaseModel):
    set_id: int
    set_name: str
    product_count: int
    simple_count: int
    configurable_count: int
    percentage: float


class SetSuggestion(BaseModel):
    set_id: int
    set_name: str
    score: int
    reasons: list[str]


class MigrationCandidatesRequest(BaseModel):
    target_set_id: int = Field(ge=1)
    source_set_id: int | None = Field(default=None, ge=1)
    criteria: list[str] = Field(default_factory=list)


class MigrationRequest(BaseModel):
    entity_ids: list[int] = Field(min_length=1)
    target_set_id: int = Field(ge=1)
    preserve_values: bool = True
