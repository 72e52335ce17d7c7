"""Unit tests for the end-to-end analysis pipeline."""

import asyncio
from datetime import datetime, timezone

import pytest
from unittest.mock import AsyncMock

from brandlens.core.exceptions import (
    APIClientError,
    AnalysisFailedError,
    BatchCancelledError,
    ConfigInvalidError,
    ReportStoreError,
    ValidationError,
)
from brandlens.repositories.report_repository import InMemoryReportStore
from brandlens.schemas.batch import BatchState
from brandlens.services.batch.pipeline import AnalysisPipeline
from brandlens.services.scoring.defaults import default_scoring_rules

FAR_FUTURE = datetime(2999, 1, 1, tzinfo=timezone.utc)


def _pipeline(registry, settings, store=None) -> AnalysisPipeline:
    return AnalysisPipeline(registry, default_scoring_rules(), store or InMemoryReportStore(), batch_settings=settings)


@pytest.mark.asyncio
async def test_analysis_produces_and_persists_report(
    project, page_signals, make_adapter, make_registry, responder, fast_batch_settings
):
    registry = make_registry(make_adapter("openai", responder=responder), make_adapter("anthropic", responder=responder))
    store = InMemoryReportStore()

    report = await _pipeline(registry, fast_batch_settings, store).execute(
        project, page_signals=page_signals, correlation_id="run-1"
    )

    assert report.batch_state == BatchState.COMPLETE
    assert report.project_id == "proj-1"
    assert report.visibility.overall_mention_rate == 100.0
    assert report.sentiment.overall_score == 100.0
    assert report.alignment.overall_score == 70.0
    globex = report.visibility.competitors[0]
    assert globex.name == "Globex"
    assert globex.global_rate == 100.0
    assert globex.comparison_losses == 2
    assert globex.differentiators[0].name == "price"
    assert report.brand_battle.competitor_analyses[0].competitor == "Globex"
    assert report.brand_battle.common_strengths == ["price"]
    assert report.brand_battle.common_weaknesses == ["support"]
    assert report.page_category.category == "blog_article"
    assert report.global_score is not None
    assert report.category_scores
    assert report.usage["openai"].input > 0
    assert report.diagnostics == []

    saved = await store.find_latest_before("proj-1", FAR_FUTURE)
    assert saved.id == report.id


@pytest.mark.asyncio
async def test_partial_batch_still_reports(project, make_adapter, make_registry, responder, fast_batch_settings):
    registry = make_registry(
        make_adapter("openai", responder=responder),
        make_adapter("mistral", error=APIClientError("down", status_code=500)),
    )

    report = await _pipeline(registry, fast_batch_settings).execute(project)

    assert report.batch_state == BatchState.PARTIAL
    assert report.visibility.overall_mention_rate == 50.0
    assert all(d["model_id"] == "mistral-model" for d in report.diagnostics)
    assert {d["failure_kind"] for d in report.diagnostics} == {"provider_error"}


@pytest.mark.asyncio
async def test_without_page_record_no_content_score(project, make_adapter, make_registry, responder, fast_batch_settings):
    registry = make_registry(make_adapter("openai", responder=responder))

    report = await _pipeline(registry, fast_batch_settings).execute(project)

    assert report.batch_state == BatchState.COMPLETE
    assert report.global_score is None
    assert report.category_scores == {}
    assert report.page_category is None
    assert report.issues == []
    assert report.visibility.overall_mention_rate == 100.0


@pytest.mark.asyncio
async def test_all_cells_failing_raises_with_diagnostics(project, make_adapter, make_registry, fast_batch_settings):
    registry = make_registry(make_adapter("openai", error=APIClientError("bad key", status_code=401)))
    store = InMemoryReportStore()

    with pytest.raises(AnalysisFailedError) as exc_info:
        await _pipeline(registry, fast_batch_settings, store).execute(project)

    assert exc_info.value.diagnostics
    assert {d["failure_kind"] for d in exc_info.value.diagnostics} == {"malformed_request"}
    assert await store.find_latest_before("proj-1", FAR_FUTURE) is None


@pytest.mark.asyncio
async def test_cancelled_batch_without_success_raises(project, make_adapter, make_registry, fast_batch_settings):
    registry = make_registry(make_adapter("openai", delay=5.0))
    cancel_event = asyncio.Event()
    cancel_event.set()

    with pytest.raises(BatchCancelledError) as exc_info:
        await _pipeline(registry, fast_batch_settings).execute(project, cancel_event=cancel_event)

    assert all(d["status"] == "cancelled" for d in exc_info.value.diagnostics)


@pytest.mark.asyncio
async def test_no_available_model_fails(project, make_adapter, make_registry, fast_batch_settings):
    registry = make_registry(make_adapter("openai", api_key=""))

    with pytest.raises(AnalysisFailedError):
        await _pipeline(registry, fast_batch_settings).execute(project)


@pytest.mark.asyncio
async def test_unknown_model_id_is_config_error(project, make_adapter, make_registry, fast_batch_settings):
    registry = make_registry(make_adapter("openai"))

    with pytest.raises(ConfigInvalidError):
        await _pipeline(registry, fast_batch_settings).execute(project, model_ids=["nope"])


@pytest.mark.asyncio
async def test_blank_brand_is_rejected(project, make_adapter, make_registry, fast_batch_settings):
    registry = make_registry(make_adapter("openai"))

    with pytest.raises(ValidationError):
        await _pipeline(registry, fast_batch_settings).execute(project.model_copy(update={"brand_name": "  "}))


@pytest.mark.asyncio
async def test_store_failure_propagates(project, make_adapter, make_registry, responder, fast_batch_settings):
    registry = make_registry(make_adapter("openai", responder=responder))
    store = InMemoryReportStore()
    store.save = AsyncMock(side_effect=ReportStoreError("database unavailable"))

    with pytest.raises(ReportStoreError):
        await _pipeline(registry, fast_batch_settings, store).execute(project)