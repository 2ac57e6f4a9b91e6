"""Attribute set migration routes."""

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.orm import Session

from attribute_insight.config import Settings, get_settings
from attribute_insight.db.dependencies import get_db
from attribute_insight.errors import NotFoundError
from attribute_insight.schemas.approvals import ProposalRead
from attribute_insight.schemas.common import ApiResponse
from attribute_insight.schemas.migration import (
    MigrationCandidate,
    MigrationCandidatesRequest,
    MigrationPreview,
    MigrationRequest,
    MigrationResult,
    MisassignedEntity,
    SetDistributionRow,
    SetSuggestion,
)
from attribute_insight.services.approvals import create_migration_proposal
from attribute_insight.services.set_migration import (
    execute_migration,
    find_migration_candidates,
    find_misassigned_products,
    get_set_distribution,
    preview_migration,
    suggest_attribute_set,
)

router = APIRouter(prefix="/migrations")


class MigrationProposalRequest(MigrationRequest):
    reason: str = ""
    created_by: int | None = None


@router.post("/candidates", response_model=ApiResponse[list[MigrationCandidate]])
def find_candidates_view(
    payload: MigrationCandidatesRequest,
    db: Session = Depends(get_db),
) -> ApiResponse[list[MigrationCandidate]]:
    candidates = find_migration_candidates(db, payload.target_set_id, payload.source_set_id, payload.criteria)
    return ApiResponse(data=candidates)


@router.post("/preview", response_model=ApiResponse[MigrationPreview])
def preview_migration_view(payload: MigrationRequest, db: Session = Depends(get_db)) -> ApiResponse[MigrationPreview]:
    """Which attributes each entity would lose or gain in the target set."""

    preview = preview_migration(db, payload.entity_ids, payload.target_set_id)
    if preview.error is not None:
        raise HTTPException(status_code=404, detail=preview.error)
    return ApiResponse(data=preview)


@router.post("", response_model=ApiResponse[MigrationResult])
def execute_migration_view(payload: MigrationRequest, db: Session = Depends(get_db)) -> ApiResponse[MigrationResult]:
    try:
        result = execute_migration(db, payload.entity_ids, payload.target_set_id, payload.preserve_values)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return ApiResponse(data=result)


@router.post("/proposals", response_model=ApiResponse[ProposalRead])
def create_migration_proposal_view(
    payload: MigrationProposalRequest,
    db: Session = Depends(get_db),
) -> ApiResponse[ProposalRead]:
    proposal = create_migration_proposal(
        db,
        payload.entity_ids,
        payload.target_set_id,
        payload.reason,
        payload.created_by,
        preserve_values=payload.preserve_values,
    )
    return ApiResponse(data=ProposalRead.model_validate(proposal))


@router.get("/misassigned", response_model=ApiResponse[list[MisassignedEntity]])
def get_misassigned_view(
    entity_type: str | None = Query(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[list[MisassignedEntity]]:
    """Default-set entities that score high for a specific set."""

    return ApiResponse(data=find_misassigned_products(db, entity_type, settings=settings))


@router.get("/distribution", response_model=ApiResponse[list[SetDistributionRow]])
def get_distribution_view(
    entity_type: str | None = Query(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[list[SetDistributionRow]]:
    return ApiResponse(data=get_set_distribution(db, entity_type, settings=settings))


@router.get("/suggestions/{entity_id}", response_model=ApiResponse[list[SetSuggestion]])
def get_suggestions_view(
    entity_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> ApiResponse[list[SetSuggestion]]:
    return ApiResponse(data=suggest_attribute_set(db, entity_id))
