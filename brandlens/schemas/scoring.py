"""Scoring configuration, page signals and score records."""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class Dimension(str, Enum):
    AUTHORITY = "authority"
    FRESHNESS = "freshness"
    STRUCTURE = "structure"
    BRAND = "brand"
    SNIPPET = "snippet"


class AnalysisLevel(str, Enum):
    """How much of the scoring model applies to a page category."""
    FULL = "full"
    PARTIAL = "partial"
    LIMITED = "limited"
    EXCLUDED = "excluded"


# =============================================================================
# CONFIGURATION
# =============================================================================

class ScoringThreshold(BaseModel):
    """One band of a threshold table: values in ``[min, max)`` score ``score``.

    ``None`` bounds are unbounded on that side.
    """
    min: Optional[float] = None
    max: Optional[float] = None
    score: float = Field(ge=0, le=100)
    description: str = ""

    def contains(self, value: float) -> bool:
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value >= self.max:
            return False
        return True


class RuleConfig(BaseModel):
    weight: float = Field(default=1.0, gt=0)
    enabled: bool = True
    description: str = ""
    thresholds: List[ScoringThreshold]


class DimensionConfig(BaseModel):
    rules: Dict[str, RuleConfig]


class PageApplicability(BaseModel):
    """Page category detection rule with its analysis level and weight modifiers."""
    category: str
    analysis_level: AnalysisLevel = AnalysisLevel.FULL
    url_patterns: List[str] = Field(default_factory=list)
    title_patterns: List[str] = Field(default_factory=list)
    schema_types: List[str] = Field(default_factory=list)
    weight_modifiers: Dict[Dimension, float] = Field(default_factory=dict)
    priority: int = 0


class GlobalScoreFormula(BaseModel):
    weights: Dict[Dimension, float]

    @model_validator(mode="after")
    def weights_sum_to_one(self) -> "GlobalScoreFormula":
        total = sum(self.weights.values())
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Global score weights must sum to 1.0, got {total:.4f}")
        if any(weight < 0 for weight in self.weights.values()):
            raise ValueError("Global score weights must be non-negative")
        return self


class ScoringRulesConfig(BaseModel):
    """Versioned scoring document: rules, thresholds, weights and keyword lists."""
    version: str = "1.0"
    dimensions: Dict[Dimension, DimensionConfig]
    global_score_formula: GlobalScoreFormula
    page_categories: List[PageApplicability] = Field(default_factory=list)
    default_category: str = "general"
    trusted_domains: List[str] = Field(default_factory=list)
    author_credential_keywords: List[str] = Field(default_factory=list)
    brand_keywords: List[str] = Field(default_factory=list)
    outdated_terms: List[str] = Field(default_factory=list)
    recognized_schema_types: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def weights_cover_dimensions(self) -> "ScoringRulesConfig":
        unknown = set(self.global_score_formula.weights) - set(self.dimensions)
        if unknown:
            names = ", ".join(sorted(d.value for d in unknown))
            raise ValueError(f"Weights reference dimensions without rules: {names}")
        return self


# =============================================================================
# PAGE SIGNALS (crawler output)
# =============================================================================

class ContentSignals(BaseModel):
    word_count: int = 0
    outbound_citations: int = 0
    citation_domains: List[str] = Field(default_factory=list)
    has_author: bool = False
    author_name: Optional[str] = None
    author_bio: str = ""
    avg_sentence_words: float = 0.0
    avg_paragraph_words: float = 0.0


class StructureSignals(BaseModel):
    h1_count: int = 0
    heading_hierarchy: List[str] = Field(default_factory=list)
    schema_types: List[str] = Field(default_factory=list)
    list_count: int = 0
    table_count: int = 0


class FreshnessSignals(BaseModel):
    publish_date: Optional[date] = None
    modified_date: Optional[date] = None


class BrandSignals(BaseModel):
    brand_mentions: int = 0
    keywords_found: List[str] = Field(default_factory=list)
    outdated_terms_found: List[str] = Field(default_factory=list)


class SnippetSignals(BaseModel):
    qa_blocks: int = 0
    list_count: int = 0
    extractable_blocks: int = 0


class PageSignals(BaseModel):
    """Read-only crawler record for one page or project."""
    url: str = ""
    title: str = ""
    crawled_at: Optional[datetime] = None
    content: ContentSignals = Field(default_factory=ContentSignals)
    structure: StructureSignals = Field(default_factory=StructureSignals)
    freshness: FreshnessSignals = Field(default_factory=FreshnessSignals)
    brand: BrandSignals = Field(default_factory=BrandSignals)
    snippet: SnippetSignals = Field(default_factory=SnippetSignals)


# =============================================================================
# SCORE RECORDS
# =============================================================================

class PageCategory(BaseModel):
    category: str
    analysis_level: AnalysisLevel
    weight_modifiers: Dict[Dimension, float] = Field(default_factory=dict)
    reason: str = ""


class ScoreIssue(BaseModel):
    dimension: str
    severity: str = "medium"
    description: str
    recommendation: str = ""
    rule_id: Optional[str] = None


class RuleResult(BaseModel):
    rule_id: str
    dimension: Dimension
    raw_value: Optional[float] = None
    score: float = Field(ge=0, le=100)
    weight: float
    passed: bool
    evidence: List[str]
    threshold: str = ""


class CategoryScore(BaseModel):
    name: Dimension
    score: float = Field(ge=0, le=100)
    weight: float
    applied_rules: int = 0
    passed_rules: int = 0
    rule_results: List[RuleResult] = Field(default_factory=list)
    issues: List[ScoreIssue] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class ContentScore(BaseModel):
    """Output of one scoring run over signals and unified-KPI judgments."""
    page_category: PageCategory
    global_score: Optional[float] = None
    category_scores: Dict[Dimension, CategoryScore] = Field(default_factory=dict)
    issues: List[ScoreIssue] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    rules_version: str = ""
    as_of: date
