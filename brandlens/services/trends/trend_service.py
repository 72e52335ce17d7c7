"""Variation reports read from the report store."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Tuple

from brandlens.core.exceptions import ValidationError
from brandlens.repositories.report_repository import ReportStore
from brandlens.schemas.report import Report, VariationResult
from brandlens.services.trends.variation import (
    VariationMetric,
    compute_competitor_variations,
    compute_model_variations,
    compute_variation,
)
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass
class PeriodVariations:
    brand: VariationResult
    competitors: List[VariationResult] = field(default_factory=list)
    models: List[VariationResult] = field(default_factory=list)
    current_start: datetime = None
    current_end: datetime = None
    prior_start: datetime = None
    prior_end: datetime = None


def previous_period(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
    """The period of equal length ending where ``start`` begins."""
    length = end - start
    return start - length, start


class TrendService:
    """Computes brand, competitor and per-model variations for a project."""

    def __init__(self, store: ReportStore):
        self.store = store

    async def period_variations(
        self,
        project_id: str,
        brand_name: str,
        start: datetime,
        end: datetime,
        metric: VariationMetric = VariationMetric.MENTION_RATE,
    ) -> PeriodVariations:
        """Compare ``[start, end]`` with the equally long period before it.

        When ``start == end`` the comparison is a single point: the current
        period holds the reports at that instant and the prior period is the
        most recent report before it.

        Raises:
            ValidationError: If ``end`` precedes ``start``
        """
        if end < start:
            raise ValidationError("Period end precedes its start")

        current = await self.store.find_by_project_and_range(project_id, start, end)
        if start == end:
            latest = await self.store.find_latest_before(project_id, start)
            prior: List[Report] = [latest] if latest else []
            prior_start = prior_end = latest.created_at if latest else start
        else:
            prior_start, prior_end = previous_period(start, end)
            prior = [
                report for report in await self.store.find_by_project_and_range(project_id, prior_start, prior_end)
                if report.created_at < prior_end
            ]

        LOGGER.info(
            f"Variations for {project_id}: {len(current)} current and {len(prior)} prior report(s)"
        )
        return PeriodVariations(
            brand=compute_variation(brand_name, current, prior, metric=metric),
            competitors=compute_competitor_variations(current, prior),
            models=compute_model_variations(brand_name, current, prior, metric=metric)
            if metric != VariationMetric.GLOBAL_SCORE else [],
            current_start=start,
            current_end=end,
            prior_start=prior_start,
            prior_end=prior_end,
        )
