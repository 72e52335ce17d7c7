"""FastAPI dependencies wiring shared application state into services."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from brandlens.core.adapters.registry import ProviderRegistry
from brandlens.core.config import Settings
from brandlens.database.base import get_async_session as get_session
from brandlens.repositories.report_repository import ReportRepository, ReportStore
from brandlens.schemas.scoring import ScoringRulesConfig
from brandlens.services.batch.pipeline import AnalysisPipeline
from brandlens.services.trends.trend_service import TrendService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.registry


def get_scoring_rules(request: Request) -> ScoringRulesConfig:
    return request.app.state.scoring_rules


async def get_report_store(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> ReportStore:
    return ReportRepository(db_session)


async def get_analysis_pipeline(
    settings: Annotated[Settings, Depends(get_settings)],
    registry: Annotated[ProviderRegistry, Depends(get_registry)],
    scoring_rules: Annotated[ScoringRulesConfig, Depends(get_scoring_rules)],
    store: Annotated[ReportStore, Depends(get_report_store)],
) -> AnalysisPipeline:
    return AnalysisPipeline(registry, scoring_rules, store, batch_settings=settings.batch)


async def get_trend_service(
    store: Annotated[ReportStore, Depends(get_report_store)]
) -> TrendService:
    return TrendService(store)
