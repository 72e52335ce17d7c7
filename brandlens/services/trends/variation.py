"""Variation of averaged report metrics between two periods.

Deltas are whole percentage points, halves rounded up. Relative percent
change is not computed: it is undefined when the prior average is zero.
"""

import math
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from brandlens.schemas.report import Report, VariationResult


class VariationMetric(str, Enum):
    MENTION_RATE = "mention_rate"
    SENTIMENT_SCORE = "sentiment_score"
    ALIGNMENT_SCORE = "alignment_score"
    GLOBAL_SCORE = "global_score"


MetricFn = Callable[[Report], Optional[float]]

BRAND_METRICS: Dict[VariationMetric, MetricFn] = {
    VariationMetric.MENTION_RATE: lambda report: report.visibility.overall_mention_rate,
    VariationMetric.SENTIMENT_SCORE: lambda report: report.sentiment.overall_score,
    VariationMetric.ALIGNMENT_SCORE: lambda report: report.alignment.overall_score,
    VariationMetric.GLOBAL_SCORE: lambda report: report.global_score,
}


def period_average(reports: Sequence[Report], metric: MetricFn) -> float:
    """Arithmetic mean of ``metric`` over ``reports``; 0 for an empty period.

    Reports for which the metric is ``None`` (no content score) are left out.
    """
    values = [value for value in (metric(report) for report in reports) if value is not None]
    if not values:
        return 0.0
    return sum(values) / len(values)


def round_points(value: float) -> int:
    """Nearest whole point, halves rounded up (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def compute_variation(
    entity: str,
    current_reports: Sequence[Report],
    prior_reports: Sequence[Report],
    metric: VariationMetric = VariationMetric.MENTION_RATE,
    metric_fn: Optional[MetricFn] = None,
    model_id: Optional[str] = None,
) -> VariationResult:
    """Compare the period averages of one metric for one entity.

    Args:
        entity: Brand or competitor name the metric belongs to
        current_reports: Reports of the current period
        prior_reports: Reports of the prior period
        metric: Metric name; selects a brand-level metric unless ``metric_fn`` is given
        metric_fn: Explicit per-report metric extractor
        model_id: Model the metric was restricted to, if any

    Returns:
        VariationResult with both averages and the percentage-point delta
    """
    fn = metric_fn or BRAND_METRICS[metric]
    current = period_average(current_reports, fn)
    prior = period_average(prior_reports, fn)
    return VariationResult(
        entity=entity,
        metric=metric.value,
        model_id=model_id,
        current_average=round(current, 2),
        prior_average=round(prior, 2),
        delta=round_points(current - prior),
        current_reports=len(current_reports),
        prior_reports=len(prior_reports),
    )


def _competitor_rate(name: str) -> MetricFn:
    key = name.strip().lower()

    def metric(report: Report) -> float:
        for competitor in report.visibility.competitors:
            if competitor.name.strip().lower() == key:
                return competitor.global_rate
        return 0.0

    return metric


def competitor_names(reports: Sequence[Report]) -> List[str]:
    """Union of competitor names across reports, first spelling wins, sorted."""
    names: Dict[str, str] = {}
    for report in reports:
        for competitor in report.visibility.competitors:
            names.setdefault(competitor.name.strip().lower(), competitor.name.strip())
    return sorted(names.values(), key=str.lower)


def compute_competitor_variations(
    current_reports: Sequence[Report], prior_reports: Sequence[Report]
) -> List[VariationResult]:
    """Mention-rate variation for every competitor seen in either period.

    A competitor missing from a report contributes 0 to that report's period.
    """
    names = competitor_names([*current_reports, *prior_reports])
    return [
        compute_variation(
            name, current_reports, prior_reports,
            metric=VariationMetric.MENTION_RATE, metric_fn=_competitor_rate(name),
        )
        for name in names
    ]


def _model_rate(model_id: str, metric: VariationMetric) -> MetricFn:
    def metric_fn(report: Report) -> float:
        if metric == VariationMetric.SENTIMENT_SCORE:
            rows = {m.model_id: m.score for m in report.sentiment.models}
        elif metric == VariationMetric.ALIGNMENT_SCORE:
            rows = {m.model_id: m.alignment_score for m in report.alignment.models}
        else:
            rows = {m.model_id: m.mention_rate for m in report.visibility.models}
        return rows.get(model_id, 0.0)

    return metric_fn


def model_ids(reports: Sequence[Report]) -> List[str]:
    ids = set()
    for report in reports:
        ids.update(m.model_id for m in report.visibility.models)
        ids.update(m.model_id for m in report.sentiment.models)
        ids.update(m.model_id for m in report.alignment.models)
    return sorted(ids)


def compute_model_variations(
    entity: str,
    current_reports: Sequence[Report],
    prior_reports: Sequence[Report],
    metric: VariationMetric = VariationMetric.MENTION_RATE,
) -> List[VariationResult]:
    """Per-model variation of a brand metric; a model absent from a report counts 0."""
    if metric == VariationMetric.GLOBAL_SCORE:
        raise ValueError("global_score has no per-model breakdown")
    return [
        compute_variation(
            entity, current_reports, prior_reports,
            metric=metric, metric_fn=_model_rate(model_id, metric), model_id=model_id,
        )
        for model_id in model_ids([*current_reports, *prior_reports])
    ]
