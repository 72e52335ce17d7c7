"""Structured response extraction: parse, one repair round-trip, then fallback."""

import asyncio
from typing import Iterable, List, Optional

from brandlens.core.adapters.base import ProviderAdapter, parse_structured
from brandlens.core.adapters.registry import ProviderRegistry
from brandlens.core.context import RunContext
from brandlens.core.exceptions import (
    MalformedResponseError,
    ProviderCallError,
    ProviderUnavailableError,
)
from brandlens.schemas.batch import BatchCell
from brandlens.schemas.judgments import (
    JUDGMENT_SCHEMAS,
    FreshnessDetails,
    JudgmentModel,
    KPIDetails,
    KPIIssue,
    KPIScores,
    Provenance,
    StructuredJudgment,
    UnifiedKPIJudgment,
)
from brandlens.schemas.llm import CallOptions, RawResponse
from brandlens.schemas.prompts import PipelineType, PromptInstance
from brandlens.schemas.report import LLMData, UnifiedKPIResult
from brandlens.services.prompt_engine import PromptTemplateEngine
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)

FALLBACK_ISSUE = "Analysis failed - fallback result used"
FALLBACK_SCORE = 50.0


def fallback_data(pipeline_type: PipelineType) -> JudgmentModel:
    """Documented default judgment for a pipeline.

    - unified-kpi: every dimension 50, no date signals, one issue flagging the fallback
    - spontaneous: brand not mentioned, nothing top of mind
    - sentiment: neutral, yellow, no keywords, zero confidence
    - comparison: winner "unknown", no differentiators
    - accuracy: no attribute scores
    - brand-battle: no strengths or weaknesses
    """
    if pipeline_type == PipelineType.UNIFIED_KPI:
        return UnifiedKPIJudgment(
            scores=KPIScores(
                authority=FALLBACK_SCORE,
                freshness=FALLBACK_SCORE,
                structure=FALLBACK_SCORE,
                brand_alignment=FALLBACK_SCORE,
            ),
            details=KPIDetails(freshness=FreshnessDetails(has_date_signals=False)),
            issues=[
                KPIIssue(
                    dimension="general",
                    severity="high",
                    description=FALLBACK_ISSUE,
                    recommendation="Re-run the analysis; scores are neutral placeholders.",
                )
            ],
            explanation="The model response could not be analyzed; neutral scores were used.",
        )
    return JUDGMENT_SCHEMAS[pipeline_type]()


class StructuredResponseExtractor:
    """Turns RawResponses into StructuredJudgments without ever raising.

    Args:
        registry: Used to find the adapter that produced a response for the
            repair round-trip. Without it, parse failures fall back directly.
        engine: Renders the per-pipeline judging guidance for repairs
        repair_timeout: Timeout for the repair call, in seconds
    """

    def __init__(
        self,
        registry: Optional[ProviderRegistry] = None,
        engine: Optional[PromptTemplateEngine] = None,
        repair_timeout: float = 60,
    ):
        self.registry = registry
        self.engine = engine or PromptTemplateEngine()
        self.repair_timeout = repair_timeout

    async def extract(
        self,
        raw: RawResponse,
        pipeline_type: PipelineType,
        prompt: Optional[PromptInstance] = None,
        context: Optional[RunContext] = None,
    ) -> StructuredJudgment:
        schema = JUDGMENT_SCHEMAS[pipeline_type]

        if not raw.success:
            return self._fallback(raw, pipeline_type, prompt, f"No response: {raw.error}")

        try:
            data = parse_structured(raw.text, schema)
            return self._judgment(raw, pipeline_type, prompt, data, Provenance.EXTRACTED)
        except MalformedResponseError as e:
            LOGGER.debug(f"Direct parse failed for {pipeline_type.value} from {raw.provider}: {e}")

        adapter = self._repair_adapter(raw.provider)
        if adapter is None:
            return self._fallback(raw, pipeline_type, prompt, "Unparseable response and no repair adapter")

        guidance = self.engine.analysis_guidance(pipeline_type, prompt.context if prompt else {})
        options = CallOptions(model=raw.model, timeout=self.repair_timeout, max_tokens=2000)
        try:
            data = await adapter.repair_structured(
                raw.text, schema, options, guidance=guidance, context=context
            )
            return self._judgment(raw, pipeline_type, prompt, data, Provenance.REPAIRED)
        except (MalformedResponseError, ProviderCallError, ProviderUnavailableError) as e:
            return self._fallback(raw, pipeline_type, prompt, f"Repair failed: {e}")
        except Exception as e:
            LOGGER.error(f"Unexpected repair error for {raw.provider}: {e}", exc_info=True)
            return self._fallback(raw, pipeline_type, prompt, f"Repair error: {e}")

    async def extract_cells(
        self,
        cells: Iterable[BatchCell],
        concurrency: int = 10,
        context: Optional[RunContext] = None,
    ) -> List[BatchCell]:
        """Attach a judgment to every cell; failed and cancelled cells get fallbacks."""
        semaphore = asyncio.Semaphore(max(1, concurrency))
        cells = list(cells)

        async def _extract(cell: BatchCell) -> None:
            raw = cell.response or RawResponse(
                provider=cell.provider,
                model=cell.model_id,
                prompt_id=cell.prompt.id,
                success=False,
                error=cell.error,
                failure_kind=cell.failure_kind,
            )
            async with semaphore:
                cell.judgment = await self.extract(raw, cell.pipeline_type, cell.prompt, context)
            cell.judgment.model = cell.model_id

        await asyncio.gather(*(_extract(cell) for cell in cells))
        return cells

    def _repair_adapter(self, provider: str) -> Optional[ProviderAdapter]:
        if self.registry is None:
            return None
        try:
            return self.registry.get(provider)
        except ProviderUnavailableError:
            return None

    @staticmethod
    def _judgment(
        raw: RawResponse,
        pipeline_type: PipelineType,
        prompt: Optional[PromptInstance],
        data: JudgmentModel,
        provenance: Provenance,
        error: Optional[str] = None,
    ) -> StructuredJudgment:
        return StructuredJudgment(
            pipeline_type=pipeline_type,
            data=data,
            provenance=provenance,
            provider=raw.provider,
            model=raw.model,
            prompt_id=raw.prompt_id or (prompt.id if prompt else None),
            target=prompt.target if prompt else None,
            error=error,
        )

    def _fallback(
        self,
        raw: RawResponse,
        pipeline_type: PipelineType,
        prompt: Optional[PromptInstance],
        reason: str,
    ) -> StructuredJudgment:
        LOGGER.warning(f"Using fallback {pipeline_type.value} judgment for {raw.provider}: {reason}")
        return self._judgment(
            raw, pipeline_type, prompt, fallback_data(pipeline_type), Provenance.FALLBACK, error=reason
        )


def build_unified_kpi_result(
    judgment: StructuredJudgment, raw: RawResponse, prompt: PromptInstance
) -> UnifiedKPIResult:
    """Shape one unified-KPI judgment for external consumers, with audit data."""
    data = judgment.data
    if not isinstance(data, UnifiedKPIJudgment):
        raise TypeError(f"Expected a unified-kpi judgment, got {judgment.pipeline_type.value}")
    return UnifiedKPIResult(
        scores=data.scores,
        details=data.details,
        issues=data.issues,
        explanation=data.explanation,
        provenance=judgment.provenance,
        llm_data=LLMData(
            prompt=prompt.text,
            response=raw.text,
            model=raw.model_version or raw.model or raw.provider,
            tokens_used=raw.token_usage.total,
        ),
    )
