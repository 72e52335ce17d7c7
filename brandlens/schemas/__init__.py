from .batch import BatchCell, BatchExecution, BatchState, CellStatus
from .judgments import JUDGMENT_SCHEMAS, Provenance, StructuredJudgment, UnifiedKPIJudgment
from .llm import CallOptions, Citation, FailureKind, RawResponse, TokenUsage
from .prompts import PipelineType, ProjectContext, PromptInstance
from .report import AnalysisFailed, Report, UnifiedKPIResult, VariationResult
from .scoring import (
    AnalysisLevel,
    CategoryScore,
    ContentScore,
    Dimension,
    PageSignals,
    RuleResult,
    ScoringRulesConfig,
    ScoringThreshold,
)

__all__ = [
    "AnalysisFailed",
    "AnalysisLevel",
    "BatchCell",
    "BatchExecution",
    "BatchState",
    "CallOptions",
    "CategoryScore",
    "CellStatus",
    "Citation",
    "ContentScore",
    "Dimension",
    "FailureKind",
    "JUDGMENT_SCHEMAS",
    "PageSignals",
    "PipelineType",
    "ProjectContext",
    "PromptInstance",
    "Provenance",
    "RawResponse",
    "Report",
    "RuleResult",
    "ScoringRulesConfig",
    "ScoringThreshold",
    "StructuredJudgment",
    "TokenUsage",
    "UnifiedKPIJudgment",
    "UnifiedKPIResult",
    "VariationResult",
]
