"""Approval workflow schemas, including the typed proposal payload union."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from attribute_insight.schemas.merge import ConflictStrategy


class ProposalType(str, Enum):
    MERGE = "merge"
    MIGRATION = "migration"
    DELETE = "delete"


class ProposalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXECUTED = "executed"
    FAILED = "failed"


class MergeProposalPayload(BaseModel):
    type: Literal["merge"] = "merge"
    source_attributes: list[int] = Field(min_length=1)
    target_attribute: int
    conflict_strategy: ConflictStrategy = ConflictStrategy.KEEP_TARGET
    delete_source: bool = False


class MigrationProposalPayload(BaseModel):
    type: Literal["migration"] = "migration"
    product_ids: list[int] = Field(min_length=1)
    target_set_id: int
    preserve_values: bool = True


class DeleteProposalPayload(BaseModel):
    type: Literal["delete"] = "delete"
    attribute_ids: list[int] = Field(min_length=1)


ProposalPayload = Annotated[
    Union[MergeProposalPayload, MigrationProposalPayload, DeleteProposalPayload],
    Field(discriminator="type"),
]

PROPOSAL_PAYLOAD_ADAPTER: TypeAdapter[ProposalPayload] = TypeAdapter(ProposalPayload)


class ProposalRead(BaseModel):
    """Serialized approval proposal."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    proposal_type: ProposalType
    payload_json: dict[str, Any]
    reason: str
    status: ProposalStatus
    created_by: int | None
    created_at: datetime
    approved_by: int | None
    approved_at: datetime | None
    approval_comment: str | None
    rejected_by: int | None
    rejected_at: datetime | None
    rejection_reason: str | None
    executed_at: datetime | None
    execution_result_json: dict[str, Any] | None


class ProposalCreateRequest(BaseModel):
    payload: ProposalPayload
    reason: str = ""
    created_by: int | None = None


class ProposalDecisionRequest(BaseModel):
    actor_id: int | None = None
    comment: str = ""


class MassDecisionRequest(ProposalDecisionRequest):
    proposal_ids: list[int] = Field(min_length=1)


class ProposalExecutionResult(BaseModel):
    success: bool
    result: dict[str, Any] | None = None
    error: str | None = None


class ProposalSubmission(BaseModel):
    """Outcome of submitting an operation through the approval policy."""

    proposal_id: int
    needs_approval: bool
    status: str
    execution: ProposalExecutionResult | None = None


class ProposalHistoryEntry(BaseModel):
    action: str
    timestamp: datetime | None
    user_id: int | None
    details: str


class MassActionResult(BaseModel):
    processed: int = 0
    skipped: int = 0


class AttributeDeleteResult(BaseModel):
    deleted: list[int] = Field(default_factory=list)
    failed: list[int] = Field(default_factory=list)
