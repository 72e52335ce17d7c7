"""Report documents and derived trend records."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from brandlens.schemas.batch import BatchState
from brandlens.schemas.judgments import KPIDetails, KPIIssue, KPIScores, Provenance
from brandlens.schemas.llm import TokenUsage
from brandlens.schemas.scoring import CategoryScore, Dimension, PageCategory, ScoreIssue


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MentionCount(BaseModel):
    name: str
    count: int


class ModelVisibility(BaseModel):
    model_id: str
    provider: str
    mentions: int = 0
    total: int = 0
    mention_rate: float = 0.0


class CompetitorMetric(BaseModel):
    """Share of spontaneous answers naming a competitor, plus head-to-head wins."""
    name: str
    global_rate: float = 0.0
    per_model: Dict[str, float] = Field(default_factory=dict)
    comparison_wins: int = 0
    comparison_losses: int = 0
    differentiators: List[MentionCount] = Field(default_factory=list)


class VisibilityMetrics(BaseModel):
    overall_mention_rate: float = 0.0
    models: List[ModelVisibility] = Field(default_factory=list)
    top_mentions: List[MentionCount] = Field(default_factory=list)
    competitors: List[CompetitorMetric] = Field(default_factory=list)


class ModelSentiment(BaseModel):
    model_id: str
    positive: int = 0
    neutral: int = 0
    negative: int = 0
    total: int = 0
    score: float = 50.0


class SentimentMetrics(BaseModel):
    overall_score: float = 50.0
    distribution: Dict[str, int] = Field(default_factory=dict)
    models: List[ModelSentiment] = Field(default_factory=list)
    top_keywords: List[MentionCount] = Field(default_factory=list)


class ModelAlignment(BaseModel):
    model_id: str
    attribute_scores: Dict[str, float] = Field(default_factory=dict)
    alignment_score: float = 0.0


class AlignmentMetrics(BaseModel):
    overall_score: float = 0.0
    models: List[ModelAlignment] = Field(default_factory=list)
    attribute_averages: Dict[str, float] = Field(default_factory=dict)


class ModelBattleAnalysis(BaseModel):
    model_id: str
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)


class CompetitorBattle(BaseModel):
    competitor: str
    analysis_by_model: List[ModelBattleAnalysis] = Field(default_factory=list)


class BrandBattleMetrics(BaseModel):
    """Brand strengths and weaknesses against each competitor, as argued by each model."""
    competitor_analyses: List[CompetitorBattle] = Field(default_factory=list)
    common_strengths: List[str] = Field(default_factory=list)
    common_weaknesses: List[str] = Field(default_factory=list)


class CitationSummary(BaseModel):
    web_search_cells: int = 0
    domains: List[MentionCount] = Field(default_factory=list)


class Report(BaseModel):
    """Immutable snapshot of one brand-project analysis."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    project_id: str
    brand_name: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    batch_id: Optional[str] = None
    batch_state: BatchState = BatchState.COMPLETE
    cancelled: bool = False
    page_category: Optional[PageCategory] = None
    global_score: Optional[float] = None
    category_scores: Dict[Dimension, CategoryScore] = Field(default_factory=dict)
    issues: List[ScoreIssue] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    visibility: VisibilityMetrics = Field(default_factory=VisibilityMetrics)
    sentiment: SentimentMetrics = Field(default_factory=SentimentMetrics)
    alignment: AlignmentMetrics = Field(default_factory=AlignmentMetrics)
    brand_battle: BrandBattleMetrics = Field(default_factory=BrandBattleMetrics)
    citations: CitationSummary = Field(default_factory=CitationSummary)
    usage: Dict[str, TokenUsage] = Field(default_factory=dict)
    diagnostics: List[Dict[str, Any]] = Field(default_factory=list)
    rules_version: str = ""


class VariationResult(BaseModel):
    """Period-over-period change of one metric for one entity, in percentage points."""
    entity: str
    metric: str = "mention_rate"
    model_id: Optional[str] = None
    current_average: float
    prior_average: float
    delta: int
    current_reports: int = 0
    prior_reports: int = 0


class LLMData(BaseModel):
    prompt: str
    response: str
    model: str
    tokens_used: int = 0


class UnifiedKPIResult(BaseModel):
    """Externally visible shape of one unified-KPI analysis."""
    scores: KPIScores
    details: KPIDetails
    issues: List[KPIIssue] = Field(default_factory=list)
    explanation: str = ""
    provenance: Provenance
    llm_data: LLMData


class AnalysisFailed(BaseModel):
    """Returned instead of a Report when no batch cell succeeded."""
    project_id: str
    batch_id: Optional[str] = None
    message: str
    cancelled: bool = False
    diagnostics: List[Dict[str, Any]] = Field(default_factory=list)
