"""Approval queue routes."""

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.orm import Session

from attribute_insight.config import Settings, get_settings
from attribute_insight.db.dependencies import get_db
from attribute_insight.errors import InvalidProposalStateError, NotFoundError, sanitize_error
from attribute_insight.schemas.approvals import (
    MassActionResult,
    MassDecisionRequest,
    ProposalCreateRequest,
    ProposalDecisionRequest,
    ProposalExecutionResult,
    ProposalHistoryEntry,
    ProposalRead,
    ProposalStatus,
    ProposalSubmission,
)
from attribute_insight.schemas.common import ApiResponse, DeleteResult
from attribute_insight.services.approvals import (
    approve_proposal,
    create_proposal,
    delete_proposal,
    execute_proposal,
    get_proposal,
    get_proposal_history,
    list_proposals,
    mass_approve,
    mass_reject,
    reject_proposal,
    submit_proposal,
)

router = APIRouter(prefix="/approvals")


@router.get("", response_model=ApiResponse[list[ProposalRead]])
def list_proposals_view(
    status: ProposalStatus | None = Query(default=None),
    db: Session = Depends(get_db),
) -> ApiResponse[list[ProposalRead]]:
    proposals = list_proposals(db, status.value if status is not None else None)
    return ApiResponse(data=[ProposalRead.model_validate(item) for item in proposals])


@router.post("", response_model=ApiResponse[ProposalRead])
def create_proposal_view(
    payload: ProposalCreateRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[ProposalRead]:
    """Queue an operation as a pending proposal."""

    proposal = create_proposal(db, payload.payload, payload.reason, payload.created_by, settings=settings)
    return ApiResponse(data=ProposalRead.model_validate(proposal))


@router.post("/submit", response_model=ApiResponse[ProposalSubmission])
def submit_proposal_view(
    payload: ProposalCreateRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[ProposalSubmission]:
    """Queue an operation, running it right away when it is below the approval threshold."""

    submission = submit_proposal(db, payload.payload, payload.reason, payload.created_by, settings=settings)
    return ApiResponse(data=submission)


@router.post("/mass-approve", response_model=ApiResponse[MassActionResult])
def mass_approve_view(
    payload: MassDecisionRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[MassActionResult]:
    result = mass_approve(db, payload.proposal_ids, payload.actor_id, payload.comment, settings=settings)
    return ApiResponse(data=result)


@router.post("/mass-reject", response_model=ApiResponse[MassActionResult])
def mass_reject_view(
    payload: MassDecisionRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[MassActionResult]:
    result = mass_reject(db, payload.proposal_ids, payload.actor_id, payload.comment, settings=settings)
    return ApiResponse(data=result)


@router.get("/{proposal_id}", response_model=ApiResponse[ProposalRead])
def get_proposal_view(
    proposal_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> ApiResponse[ProposalRead]:
    proposal = get_proposal(db, proposal_id)
    if proposal is None:
        raise HTTPException(status_code=404, detail="Proposal not found")
    return ApiResponse(data=ProposalRead.model_validate(proposal))


@router.get("/{proposal_id}/history", response_model=ApiResponse[list[ProposalHistoryEntry]])
def get_history_view(
    proposal_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> ApiResponse[list[ProposalHistoryEntry]]:
    if get_proposal(db, proposal_id) is None:
        raise HTTPException(status_code=404, detail="Proposal not found")
    return ApiResponse(data=get_proposal_history(db, proposal_id))


@router.post("/{proposal_id}/approve", response_model=ApiResponse[ProposalRead])
def approve_view(
    payload: ProposalDecisionRequest,
    proposal_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[ProposalRead]:
    if not approve_proposal(db, proposal_id, payload.actor_id, payload.comment, settings=settings):
        raise HTTPException(status_code=409, detail="Only pending proposals can be approved")
    return ApiResponse(data=ProposalRead.model_validate(get_proposal(db, proposal_id)))


@router.post("/{proposal_id}/reject", response_model=ApiResponse[ProposalRead])
def reject_view(
    payload: ProposalDecisionRequest,
    proposal_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[ProposalRead]:
    if not reject_proposal(db, proposal_id, payload.actor_id, payload.comment, settings=settings):
        raise HTTPException(status_code=409, detail="Only pending proposals can be rejected")
    return ApiResponse(data=ProposalRead.model_validate(get_proposal(db, proposal_id)))


@router.post("/{proposal_id}/execute", response_model=ApiResponse[ProposalExecutionResult])
def execute_view(
    proposal_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[ProposalExecutionResult]:
    """Run an approved proposal; operation failures come back with success=false."""

    try:
        result = execute_proposal(db, proposal_id, settings=settings)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=sanitize_error(exc)) from exc
    except InvalidProposalStateError as exc:
        raise HTTPException(status_code=409, detail=sanitize_error(exc)) from exc
    return ApiResponse(data=result)


@router.delete("/{proposal_id}", response_model=ApiResponse[DeleteResult])
def delete_proposal_view(
    proposal_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> ApiResponse[DeleteResult]:
    if not delete_proposal(db, proposal_id):
        raise HTTPException(status_code=404, detail="Proposal not found")
    return ApiResponse(data=DeleteResult(id=proposal_id, deleted=True))
