"""Period-over-period variation endpoints."""

from datetime import datetime
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from brandlens.api.deps import get_trend_service
from brandlens.core.exceptions import ReportStoreError, ValidationError
from brandlens.schemas.report import VariationResult
from brandlens.services.trends.trend_service import TrendService
from brandlens.services.trends.variation import VariationMetric

router = APIRouter()


class VariationsResponse(BaseModel):
    project_id: str
    metric: VariationMetric
    current_start: datetime
    current_end: datetime
    prior_start: Optional[datetime] = None
    prior_end: Optional[datetime] = None
    brand: VariationResult
    competitors: List[VariationResult]
    models: List[VariationResult]


@router.get(
    "/{project_id}/variations",
    response_model=VariationsResponse,
    summary="Compare a period with the one before it",
    operation_id="get_project_variations",
)
async def get_variations(
    project_id: str,
    trend_service: Annotated[TrendService, Depends(get_trend_service)],
    brand_name: str = Query(..., description="Brand whose mention rate is compared"),
    start: datetime = Query(..., description="Start of the current period"),
    end: datetime = Query(..., description="End of the current period"),
    metric: VariationMetric = Query(VariationMetric.MENTION_RATE),
) -> VariationsResponse:
    try:
        variations = await trend_service.period_variations(project_id, brand_name, start, end, metric)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except ReportStoreError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)

    return VariationsResponse(
        project_id=project_id,
        metric=metric,
        current_start=variations.current_start,
        current_end=variations.current_end,
        prior_start=variations.prior_start,
        prior_end=variations.prior_end,
        brand=variations.brand,
        competitors=variations.competitors,
        models=variations.models,
    )
