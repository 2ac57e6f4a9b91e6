"""Attribute merge routes."""

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from attribute_insight.db.dependencies import get_db
from attribute_insight.errors import NotFoundError
from attribute_insight.schemas.approvals import ProposalRead
from attribute_insight.schemas.common import ApiResponse
from attribute_insight.schemas.merge import (
    MergeExecuteRequest,
    MergeLogRead,
    MergePreview,
    MergePreviewRequest,
    MergeResult,
    OptionMergeCounts,
    RollbackResult,
)
from attribute_insight.services.approvals import create_merge_proposal
from attribute_insight.services.attribute_merger import (
    execute_merge,
    list_merge_logs,
    merge_options,
    preview_merge,
    rollback_merge,
)

router = APIRouter(prefix="/merges")


class OptionMappingRequest(BaseModel):
    source_attribute_id: int
    target_attribute_id: int
    option_mapping: dict[int, int | None]


class MergeProposalRequest(MergeExecuteRequest):
    reason: str = ""
    created_by: int | None = None


@router.post("/preview", response_model=ApiResponse[MergePreview])
def preview_merge_view(payload: MergePreviewRequest, db: Session = Depends(get_db)) -> ApiResponse[MergePreview]:
    """Dry run: compatibility, option mapping and value conflicts."""

    preview = preview_merge(db, payload.source_attribute_ids, payload.target_attribute_id)
    if preview.error is not None:
        raise HTTPException(status_code=404, detail=preview.error)
    return ApiResponse(data=preview)


@router.post("", response_model=ApiResponse[MergeResult])
def execute_merge_view(payload: MergeExecuteRequest, db: Session = Depends(get_db)) -> ApiResponse[MergeResult]:
    try:
        result = execute_merge(
            db,
            payload.source_attribute_ids,
            payload.target_attribute_id,
            payload.conflict_strategy,
            payload.delete_source,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return ApiResponse(data=result)


@router.post("/proposals", response_model=ApiResponse[ProposalRead])
def create_merge_proposal_view(
    payload: MergeProposalRequest,
    db: Session = Depends(get_db),
) -> ApiResponse[ProposalRead]:
    """Queue a merge for approval instead of running it."""

    proposal = create_merge_proposal(
        db,
        payload.source_attribute_ids,
        payload.target_attribute_id,
        payload.conflict_strategy,
        payload.reason,
        payload.created_by,
        delete_source=payload.delete_source,
    )
    return ApiResponse(data=ProposalRead.model_validate(proposal))


@router.post("/options", response_model=ApiResponse[OptionMergeCounts])
def merge_options_view(payload: OptionMappingRequest, db: Session = Depends(get_db)) -> ApiResponse[OptionMergeCounts]:
    try:
        counts = merge_options(db, payload.source_attribute_id, payload.target_attribute_id, payload.option_mapping)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return ApiResponse(data=counts)


@router.get("/logs", response_model=ApiResponse[list[MergeLogRead]])
def list_merge_logs_view(
    target_attribute_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
) -> ApiResponse[list[MergeLogRead]]:
    logs = list_merge_logs(db, target_attribute_id)
    return ApiResponse(data=[MergeLogRead.model_validate(item) for item in logs])


@router.post("/logs/{merge_log_id}/rollback", response_model=ApiResponse[RollbackResult])
def rollback_merge_view(
    merge_log_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> ApiResponse[RollbackResult]:
    """Undo a merge from its logged snapshot."""

    result = rollback_merge(db, merge_log_id)
    if not result.rolled_back:
        raise HTTPException(status_code=409, detail="Merge log not found or already rolled back")
    return ApiResponse(data=result)
