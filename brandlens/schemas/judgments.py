"""Structured judgment schemas produced from free-text model answers.

Field names are snake_case in Python and camelCase on the wire, which is
the shape the analysis prompts ask models to return.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from brandlens.schemas.prompts import PipelineType


class Provenance(str, Enum):
    """Where a judgment's values came from."""
    EXTRACTED = "extracted"
    REPAIRED = "repaired"
    FALLBACK = "fallback"


class JudgmentModel(BaseModel):
    """Base for judgment schemas: camelCase aliases, snake_case attributes."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# BATTERY JUDGMENTS
# =============================================================================

class SpontaneousJudgment(JudgmentModel):
    mentioned: bool = False
    top_of_mind: List[str] = Field(default_factory=list)


class SentimentJudgment(JudgmentModel):
    valence: Literal["positive", "neutral", "negative"] = "neutral"
    status: Literal["green", "yellow", "red"] = "yellow"
    keywords: List[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class ComparisonJudgment(JudgmentModel):
    winner: str = "unknown"
    differentiators: List[str] = Field(default_factory=list)


class AttributeScore(JudgmentModel):
    attribute: str
    score: float = Field(ge=0.0, le=1.0)
    evaluation: str = ""


class AccuracyJudgment(JudgmentModel):
    attribute_scores: List[AttributeScore] = Field(default_factory=list)


class BrandBattleJudgment(JudgmentModel):
    competitor: str = ""
    brand_strengths: List[str] = Field(default_factory=list)
    brand_weaknesses: List[str] = Field(default_factory=list)


# =============================================================================
# UNIFIED KPI JUDGMENT
# =============================================================================

class KPIScores(JudgmentModel):
    """Dimension scores on a 0-100 scale; out-of-range values are clamped."""
    authority: float = 50.0
    freshness: float = 50.0
    structure: float = 50.0
    brand_alignment: float = 50.0
    snippet_extractability: Optional[float] = None

    @field_validator(
        "authority", "freshness", "structure", "brand_alignment", "snippet_extractability",
        mode="before",
    )
    @classmethod
    def clamp_score(cls, value):
        if value is None:
            return value
        return max(0.0, min(100.0, float(value)))


class AuthorityDetails(JudgmentModel):
    has_author: bool = False
    citation_count: int = 0
    domain_authority: Literal["low", "medium", "high"] = "low"
    author_credentials: List[str] = Field(default_factory=list)


class FreshnessDetails(JudgmentModel):
    days_since_update: Optional[int] = None
    has_date_signals: bool = False
    publish_date: Optional[str] = None
    modified_date: Optional[str] = None


class StructureDetails(JudgmentModel):
    h1_count: int = 0
    avg_sentence_words: float = 0.0
    has_schema: bool = False
    heading_hierarchy_score: float = 0.0


class BrandDetails(JudgmentModel):
    brand_mentions: int = 0
    alignment_issues: List[str] = Field(default_factory=list)
    consistency_score: float = 0.0
    missing_keywords: List[str] = Field(default_factory=list)


class KPIDetails(JudgmentModel):
    authority: AuthorityDetails = Field(default_factory=AuthorityDetails)
    freshness: FreshnessDetails = Field(default_factory=FreshnessDetails)
    structure: StructureDetails = Field(default_factory=StructureDetails)
    brand: BrandDetails = Field(default_factory=BrandDetails)


class KPIIssue(JudgmentModel):
    dimension: str
    severity: Literal["critical", "high", "medium", "low"] = "medium"
    description: str
    recommendation: str = ""


class UnifiedKPIJudgment(JudgmentModel):
    scores: KPIScores
    details: KPIDetails = Field(default_factory=KPIDetails)
    issues: List[KPIIssue] = Field(default_factory=list)
    explanation: str = ""


JUDGMENT_SCHEMAS: Dict[PipelineType, Type[JudgmentModel]] = {
    PipelineType.SPONTANEOUS: SpontaneousJudgment,
    PipelineType.SENTIMENT: SentimentJudgment,
    PipelineType.COMPARISON: ComparisonJudgment,
    PipelineType.ACCURACY: AccuracyJudgment,
    PipelineType.BRAND_BATTLE: BrandBattleJudgment,
    PipelineType.UNIFIED_KPI: UnifiedKPIJudgment,
}


@dataclass
class StructuredJudgment:
    """A schema-validated judgment for one batch cell, tagged with provenance."""
    pipeline_type: PipelineType
    data: JudgmentModel
    provenance: Provenance
    provider: Optional[str] = None
    model: Optional[str] = None
    prompt_id: Optional[str] = None
    target: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.provenance == Provenance.FALLBACK
