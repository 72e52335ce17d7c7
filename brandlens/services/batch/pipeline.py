"""End-to-end analysis of one brand project."""

import asyncio
import json
from typing import List, Optional

from brandlens.core.adapters.registry import ProviderRegistry
from brandlens.core.base_service import BaseService
from brandlens.core.config import BatchSettings
from brandlens.core.context import RunContext
from brandlens.core.exceptions import (
    AnalysisFailedError,
    BatchCancelledError,
    PromptRenderError,
    ValidationError,
)
from brandlens.repositories.report_repository import ReportStore
from brandlens.schemas.batch import BatchExecution
from brandlens.schemas.prompts import PipelineType, ProjectContext, PromptInstance
from brandlens.schemas.report import Report
from brandlens.schemas.scoring import PageSignals, ScoringRulesConfig
from brandlens.services.batch.aggregation import MetricsAggregator
from brandlens.services.batch.orchestrator import BatchOrchestrator
from brandlens.services.extraction.structured_extractor import StructuredResponseExtractor
from brandlens.services.prompt_engine import PromptTemplateEngine
from brandlens.services.scoring.engine import ScoringEngine
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


class AnalysisPipeline(BaseService):
    """Renders the prompt battery, runs it across models, scores and persists a Report.

    Args:
        registry: Provider registry used for model selection and repairs
        scoring_rules: Scoring configuration loaded for this run
        store: Where finished reports are saved
        batch_settings: Timeouts, concurrency and runs per model
        engine: Prompt template engine; builtin templates by default
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        scoring_rules: ScoringRulesConfig,
        store: ReportStore,
        batch_settings: Optional[BatchSettings] = None,
        engine: Optional[PromptTemplateEngine] = None,
    ):
        super().__init__()
        self.registry = registry
        self.store = store
        self.batch_settings = batch_settings or BatchSettings()
        self.engine = engine or PromptTemplateEngine()
        self.orchestrator = BatchOrchestrator(self.batch_settings)
        self.extractor = StructuredResponseExtractor(registry=registry, engine=self.engine)
        self.scoring = ScoringEngine(scoring_rules)

    def validate(self, project: ProjectContext, *args, **kwargs):
        if not project.brand_name.strip():
            raise ValidationError("Project brand name must not be empty")

    async def run(
        self,
        project: ProjectContext,
        model_ids: Optional[List[str]] = None,
        page_signals: Optional[PageSignals] = None,
        cancel_event: Optional[asyncio.Event] = None,
        correlation_id: Optional[str] = None,
    ) -> Report:
        """Run one analysis.

        Args:
            project: Brand project to analyze
            model_ids: Catalog ids to query; every enabled model when omitted
            page_signals: Crawled page record; adds a unified-KPI prompt when given
            cancel_event: Setting it abandons the cells still in flight
            correlation_id: Id stamped on log records of this run; generated when omitted

        Returns:
            The persisted Report

        Raises:
            ConfigInvalidError: If a requested model id is unknown
            AnalysisFailedError: If no model is available or no cell succeeded
            BatchCancelledError: If the batch was cancelled before any cell succeeded
        """
        bindings = self.registry.select(model_ids)
        if not bindings:
            raise AnalysisFailedError(
                f"No available models for project {project.project_id}",
                diagnostics=[{"error": "no available providers"}],
            )

        prompts, skipped = self.engine.build_battery(project)
        if page_signals is not None:
            kpi_prompt = self._unified_kpi_prompt(project, page_signals, skipped)
            if kpi_prompt is not None:
                prompts.append(kpi_prompt)

        with RunContext(correlation_id) as context:
            execution = await self.orchestrator.run_batch(
                project, bindings, prompts, cancel_event=cancel_event, context=context
            )
            execution.skipped_prompts = skipped
            self._ensure_succeeded(execution)

            await self.extractor.extract_cells(
                execution.cells,
                concurrency=self.batch_settings.extraction_concurrency,
                context=context,
            )
            usage = context.usage_by_provider()

        report = self._build_report(project, execution, page_signals)
        report.usage = usage
        await self.store.save(report)

        LOGGER.info(
            f"Analysis {report.id} for {project.project_id} finished {execution.state.value}",
            extra={"global_score": report.global_score, "batch_id": execution.id},
        )
        return report

    def _unified_kpi_prompt(
        self, project: ProjectContext, signals: PageSignals, skipped: List[dict]
    ) -> Optional[PromptInstance]:
        context = {
            **project.template_context(),
            "url": signals.url,
            "title": signals.title,
            "page_signals": json.dumps(
                signals.model_dump(mode="json", exclude={"url", "title"}), indent=2
            ),
        }
        try:
            return self.engine.build_instance(PipelineType.UNIFIED_KPI.value, context, target=signals.url)
        except PromptRenderError as e:
            LOGGER.warning(f"Skipping unified-kpi prompt: {e}")
            skipped.append({"template_id": PipelineType.UNIFIED_KPI.value, "reason": str(e)})
            return None

    @staticmethod
    def _ensure_succeeded(execution: BatchExecution) -> None:
        if execution.succeeded_cells:
            return
        diagnostics = execution.diagnostics()
        if execution.cancelled:
            raise BatchCancelledError(
                f"Batch {execution.id} was cancelled before any cell succeeded", diagnostics
            )
        raise AnalysisFailedError(
            f"All {len(execution.cells)} cells of batch {execution.id} failed", diagnostics
        )

    def _build_report(
        self,
        project: ProjectContext,
        execution: BatchExecution,
        page_signals: Optional[PageSignals],
    ) -> Report:
        cells = execution.cells
        aggregator = MetricsAggregator(project)
        content_score = None
        if page_signals is not None:
            judgments = [cell.judgment for cell in cells if cell.judgment is not None]
            content_score = self.scoring.score(page_signals, judgments, brand_keywords=project.brand_keywords)

        diagnostics = execution.diagnostics()
        diagnostics.extend({"skipped": True, **skip} for skip in execution.skipped_prompts)

        report = Report(
            project_id=project.project_id,
            brand_name=project.brand_name,
            batch_id=execution.id,
            batch_state=execution.state,
            cancelled=execution.cancelled,
            visibility=aggregator.visibility(cells),
            sentiment=aggregator.sentiment(cells),
            alignment=aggregator.alignment(cells),
            brand_battle=aggregator.brand_battle(cells),
            citations=MetricsAggregator.citations(cells),
            diagnostics=diagnostics,
        )
        # No page record, no content score.
        if content_score is not None:
            report.page_category = content_score.page_category
            report.global_score = content_score.global_score
            report.category_scores = content_score.category_scores
            report.issues = content_score.issues
            report.recommendations = content_score.recommendations
            report.rules_version = content_score.rules_version
        return report
