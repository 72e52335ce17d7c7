"""Analysis execution endpoints."""

from typing import Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from brandlens.api.deps import get_analysis_pipeline
from brandlens.core.exceptions import (
    AnalysisFailedError,
    BatchCancelledError,
    ConfigInvalidError,
    ReportStoreError,
    ValidationError,
)
from brandlens.schemas.prompts import PipelineType, ProjectContext
from brandlens.schemas.report import AnalysisFailed, Report
from brandlens.schemas.scoring import PageSignals
from brandlens.services.batch.pipeline import AnalysisPipeline
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


class AnalysisRequest(BaseModel):
    """Brand project definition plus run options."""
    brand_name: str = Field(..., description="Brand under analysis")
    market: str = ""
    category: str = ""
    language: str = "en"
    attributes: List[str] = Field(default_factory=list)
    competitors: List[str] = Field(default_factory=list)
    brand_keywords: List[str] = Field(default_factory=list)
    custom_questions: Dict[PipelineType, List[str]] = Field(default_factory=dict)
    model_ids: Optional[List[str]] = Field(default=None, description="Catalog ids; all enabled models if omitted")
    page_signals: Optional[PageSignals] = Field(default=None, description="Crawled page to score")

    def to_project(self, project_id: str) -> ProjectContext:
        return ProjectContext(
            project_id=project_id,
            **self.model_dump(exclude={"model_ids", "page_signals"}),
        )


@router.post(
    "/{project_id}/analyses",
    response_model=Report,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": AnalysisFailed}},
    summary="Run a brand analysis",
    operation_id="run_project_analysis",
)
async def run_analysis(
    request: Request,
    project_id: str,
    payload: AnalysisRequest,
    pipeline: Annotated[AnalysisPipeline, Depends(get_analysis_pipeline)],
):
    """Run the prompt battery across the selected models and persist the Report."""
    project = payload.to_project(project_id)
    try:
        return await pipeline.execute(
            project,
            model_ids=payload.model_ids,
            page_signals=payload.page_signals,
            correlation_id=getattr(request.state, "correlation_id", None),
        )
    except (AnalysisFailedError, BatchCancelledError) as e:
        LOGGER.warning(f"Analysis for {project_id} produced no report: {e.message}")
        failed = AnalysisFailed(
            project_id=project_id,
            message=e.message,
            cancelled=isinstance(e, BatchCancelledError),
            diagnostics=e.diagnostics,
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=failed.model_dump(mode="json"),
        )
    except (ConfigInvalidError, ValidationError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except ReportStoreError as e:
        LOGGER.error(f"Failed to persist report for {project_id}: {e.message}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
