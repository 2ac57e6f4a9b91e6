"""Read-only attribute analysis routes: fill rates, duplicates and format chaos."""

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.orm import Session

from attribute_insight.config import Settings, get_settings
from attribute_insight.db.dependencies import get_db
from attribute_insight.duplicates.detector import (
    compare_two_attributes,
    find_duplicates,
    find_similar_to,
    get_known_patterns,
)
from attribute_insight.eav.catalog import get_attribute
from attribute_insight.schemas.chaos import AttributeChaosReport, ChaosScan, StandardizationSuggestion
from attribute_insight.schemas.common import ApiResponse
from attribute_insight.schemas.duplicates import AttributeComparison, DuplicateGroup, SimilarAttribute
from attribute_insight.schemas.fill_rate import (
    AttributeFillRate,
    FillRateSummary,
    ManufacturerFillRate,
    SetFillRates,
)
from attribute_insight.services.fill_rate import (
    get_attribute_fill_rates,
    get_critical_attributes,
    get_fill_rates_by_manufacturer,
    get_fill_rates_by_set,
    get_summary_statistics,
    get_unused_attributes,
)
from attribute_insight.services.format_chaos import analyze_attribute, analyze_attributes, suggest_standard_format

router = APIRouter(prefix="/analysis")


def _entity_type(entity_type: str | None, settings: Settings) -> str:
    return entity_type or settings.default_entity_type


@router.get("/fill-rates", response_model=ApiResponse[list[AttributeFillRate]])
def get_fill_rates_view(
    entity_type: str | None = Query(default=None),
    attribute_set_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[list[AttributeFillRate]]:
    """Fill rate per attribute, worst first."""

    rates = get_attribute_fill_rates(db, _entity_type(entity_type, settings), attribute_set_id, settings=settings)
    return ApiResponse(data=list(rates.values()))


@router.get("/fill-rates/by-set", response_model=ApiResponse[list[SetFillRates]])
def get_fill_rates_by_set_view(
    entity_type: str | None = Query(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[list[SetFillRates]]:
    rates = get_fill_rates_by_set(db, _entity_type(entity_type, settings), settings=settings)
    return ApiResponse(data=list(rates.values()))


@router.get("/fill-rates/critical", response_model=ApiResponse[list[AttributeFillRate]])
def get_critical_view(
    entity_type: str | None = Query(default=None),
    threshold: float | None = Query(default=None, ge=0, le=100),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[list[AttributeFillRate]]:
    """Attributes below the critical threshold (or an explicit one)."""

    cutoff = settings.fillrate_critical_threshold if threshold is None else threshold
    rates = get_critical_attributes(db, _entity_type(entity_type, settings), cutoff, settings=settings)
    return ApiResponse(data=list(rates.values()))


@router.get("/fill-rates/unused", response_model=ApiResponse[list[AttributeFillRate]])
def get_unused_view(
    entity_type: str | None = Query(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[list[AttributeFillRate]]:
    rates = get_unused_attributes(db, _entity_type(entity_type, settings), settings=settings)
    return ApiResponse(data=list(rates.values()))


@router.get("/fill-rates/summary", response_model=ApiResponse[FillRateSummary])
def get_summary_view(
    entity_type: str | None = Query(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[FillRateSummary]:
    return ApiResponse(data=get_summary_statistics(db, _entity_type(entity_type, settings), settings=settings))


@router.get("/fill-rates/by-manufacturer", response_model=ApiResponse[list[ManufacturerFillRate]])
def get_fill_rates_by_manufacturer_view(
    attribute_code: str = Query(..., min_length=1),
    entity_type: str | None = Query(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[list[ManufacturerFillRate]]:
    rows = get_fill_rates_by_manufacturer(db, attribute_code, entity_type, settings=settings)
    return ApiResponse(data=rows)


@router.get("/duplicates", response_model=ApiResponse[list[DuplicateGroup]])
def get_duplicates_view(
    entity_type: str | None = Query(default=None),
    threshold: float | None = Query(default=None, ge=0, le=100),
    strategies: list[str] | None = Query(default=None),
    include_system: bool = Query(default=False),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[list[DuplicateGroup]]:
    """Groups of attributes that likely describe the same thing."""

    groups = find_duplicates(
        db,
        _entity_type(entity_type, settings),
        threshold,
        strategies,
        include_system=include_system,
        settings=settings,
    )
    return ApiResponse(data=groups)


@router.get("/duplicates/patterns", response_model=ApiResponse[dict[str, list[str]]])
def get_known_patterns_view() -> ApiResponse[dict[str, list[str]]]:
    return ApiResponse(data=get_known_patterns())


@router.get("/duplicates/similar/{attribute_id}", response_model=ApiResponse[list[SimilarAttribute]])
def get_similar_view(
    attribute_id: int = Path(..., ge=1),
    threshold: float | None = Query(default=None, ge=0, le=100),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[list[SimilarAttribute]]:
    if get_attribute(db, attribute_id) is None:
        raise HTTPException(status_code=404, detail="Attribute not found")
    return ApiResponse(data=find_similar_to(db, attribute_id, threshold, settings=settings))


@router.get("/duplicates/compare", response_model=ApiResponse[AttributeComparison])
def compare_view(
    first_id: int = Query(..., ge=1),
    second_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
) -> ApiResponse[AttributeComparison]:
    comparison = compare_two_attributes(db, first_id, second_id)
    if comparison.error is not None:
        raise HTTPException(status_code=404, detail=comparison.error)
    return ApiResponse(data=comparison)


@router.get("/chaos", response_model=ApiResponse[ChaosScan])
def get_chaos_view(
    entity_type: str | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=500),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[ChaosScan]:
    """Text attributes with inconsistent value formatting, worst first."""

    return ApiResponse(data=analyze_attributes(db, _entity_type(entity_type, settings), limit))


@router.get("/chaos/{attribute_code}", response_model=ApiResponse[AttributeChaosReport])
def get_attribute_chaos_view(
    attribute_code: str = Path(..., min_length=1),
    entity_type: str | None = Query(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[AttributeChaosReport]:
    return ApiResponse(data=analyze_attribute(db, attribute_code, _entity_type(entity_type, settings)))


@router.get("/chaos/{attribute_code}/suggestions", response_model=ApiResponse[StandardizationSuggestion])
def get_chaos_suggestions_view(
    attribute_code: str = Path(..., min_length=1),
    entity_type: str | None = Query(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[StandardizationSuggestion]:
    suggestion = suggest_standard_format(db, attribute_code, _entity_type(entity_type, settings))
    return ApiResponse(data=suggestion)
