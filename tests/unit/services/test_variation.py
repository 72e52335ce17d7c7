"""Unit tests for period-over-period variation."""

from datetime import datetime, timedelta, timezone

import pytest

from brandlens.core.exceptions import ValidationError
from brandlens.repositories.report_repository import InMemoryReportStore
from brandlens.schemas.report import CompetitorMetric, ModelVisibility, Report, VisibilityMetrics
from brandlens.services.trends.trend_service import TrendService, previous_period
from brandlens.services.trends.variation import (
    VariationMetric,
    compute_competitor_variations,
    compute_model_variations,
    compute_variation,
    period_average,
)

T0 = datetime(2024, 3, 1, tzinfo=timezone.utc)


def _report(mention_rate, competitors=None, models=None, created_at=T0, global_score=None) -> Report:
    return Report(
        project_id="proj-1",
        brand_name="Acme",
        created_at=created_at,
        global_score=global_score,
        visibility=VisibilityMetrics(
            overall_mention_rate=mention_rate,
            competitors=[CompetitorMetric(name=n, global_rate=r) for n, r in (competitors or {}).items()],
            models=[ModelVisibility(model_id=m, provider="openai", mention_rate=r) for m, r in (models or {}).items()],
        ),
    )


def test_brand_variation_in_percentage_points():
    result = compute_variation("Acme", [_report(80), _report(60)], [_report(50)])

    assert result.current_average == 70
    assert result.prior_average == 50
    assert result.delta == 20
    assert result.current_reports == 2
    assert result.prior_reports == 1


def test_empty_period_averages_zero():
    assert period_average([], lambda report: 100) == 0.0

    result = compute_variation("Acme", [_report(40)], [])
    assert result.prior_average == 0
    assert result.delta == 40


def test_delta_is_rounded_to_whole_points():
    result = compute_variation("Acme", [_report(33.3), _report(33.3)], [_report(10.0)])

    assert result.delta == 23


@pytest.mark.parametrize(
    "current, prior, expected",
    [
        (62.5, 60.0, 3),
        (63.5, 60.0, 4),
        (60.0, 62.5, -2),
        (60.0, 63.5, -3),
        (50.5, 50.0, 1),
    ],
)
def test_half_point_deltas_round_up(current, prior, expected):
    result = compute_variation("Acme", [_report(current)], [_report(prior)])

    assert result.delta == expected


def test_competitor_variations_use_union_of_names():
    current = [_report(50, {"Globex": 40}), _report(50, {"Globex": 20, "Initech": 30})]
    prior = [_report(50, {"Umbrella": 10})]

    results = {r.entity: r for r in compute_competitor_variations(current, prior)}

    assert sorted(results) == ["Globex", "Initech", "Umbrella"]
    assert results["Globex"].current_average == 30
    assert results["Initech"].current_average == 15
    assert results["Umbrella"].current_average == 0
    assert results["Umbrella"].delta == -10


def test_model_variations_count_absent_models_as_zero():
    current = [_report(50, models={"gpt-4o": 80, "claude": 60})]
    prior = [_report(50, models={"gpt-4o": 50})]

    results = {r.model_id: r for r in compute_model_variations("Acme", current, prior)}

    assert results["gpt-4o"].delta == 30
    assert results["claude"].prior_average == 0
    assert results["claude"].delta == 60


def test_model_variations_reject_global_score():
    with pytest.raises(ValueError):
        compute_model_variations("Acme", [], [], metric=VariationMetric.GLOBAL_SCORE)


def test_global_score_variation_skips_reports_without_content_score():
    result = compute_variation(
        "Acme", [_report(0, global_score=80)], [_report(0), _report(0, global_score=60)],
        metric=VariationMetric.GLOBAL_SCORE,
    )

    assert result.prior_average == 60
    assert result.prior_reports == 2
    assert result.delta == 20


def test_previous_period_has_same_length():
    start, end = T0, T0 + timedelta(days=7)

    assert previous_period(start, end) == (T0 - timedelta(days=7), T0)


@pytest.mark.asyncio
async def test_period_variations_read_store():
    store = InMemoryReportStore()
    for days, rate in ((1, 80), (3, 60), (-3, 50), (-20, 10)):
        await store.save(_report(rate, {"Globex": rate / 2}, created_at=T0 + timedelta(days=days)))

    variations = await TrendService(store).period_variations(
        "proj-1", "Acme", T0, T0 + timedelta(days=7)
    )

    assert variations.brand.current_average == 70
    assert variations.brand.prior_average == 50
    assert variations.brand.delta == 20
    assert variations.competitors[0].entity == "Globex"
    assert variations.competitors[0].delta == 10
    assert variations.prior_start == T0 - timedelta(days=7)


@pytest.mark.asyncio
async def test_single_point_range_compares_with_latest_earlier_report():
    store = InMemoryReportStore()
    await store.save(_report(30, created_at=T0 - timedelta(days=10)))
    await store.save(_report(45, created_at=T0 - timedelta(days=2)))
    await store.save(_report(60, created_at=T0))

    variations = await TrendService(store).period_variations("proj-1", "Acme", T0, T0)

    assert variations.brand.current_average == 60
    assert variations.brand.prior_average == 45
    assert variations.brand.delta == 15
    assert variations.prior_start == T0 - timedelta(days=2)


@pytest.mark.asyncio
async def test_reversed_period_is_rejected():
    with pytest.raises(ValidationError):
        await TrendService(InMemoryReportStore()).period_variations("proj-1", "Acme", T0, T0 - timedelta(days=1))
