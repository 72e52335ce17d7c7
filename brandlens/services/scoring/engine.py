"""Scoring engine: rules and model judgments to category and global scores."""

from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence, Union

from brandlens.schemas.judgments import StructuredJudgment, UnifiedKPIJudgment
from brandlens.schemas.scoring import (
    AnalysisLevel,
    CategoryScore,
    ContentScore,
    Dimension,
    PageCategory,
    PageSignals,
    RuleResult,
    ScoreIssue,
    ScoringRulesConfig,
)
from brandlens.services.scoring.applicability import PageCategorizer, applicable_dimensions
from brandlens.services.scoring.rules import RULES, RuleInput
from brandlens.services.scoring.thresholds import find_threshold
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)

PASS_SCORE = 60
KPI_DIMENSIONS = {"brandalignment": Dimension.BRAND, "brand_alignment": Dimension.BRAND}


def clamp_score(value: float) -> float:
    return max(0.0, min(100.0, value))


def compute_category_score(results: Sequence[RuleResult]) -> float:
    """Weighted mean of applied rule scores; 0 when no rule applied."""
    total_weight = sum(result.weight for result in results)
    if total_weight <= 0:
        return 0.0
    weighted = sum(result.score * result.weight for result in results)
    return round(clamp_score(weighted / total_weight), 2)


def compute_global_score(
    category_scores: Mapping[Union[str, Dimension], float],
    weights: Mapping[Union[str, Dimension], float],
    modifiers: Optional[Mapping[Union[str, Dimension], float]] = None,
) -> Optional[float]:
    """Weighted combination of category scores, renormalized over present categories.

    With every category present and no modifiers this is the plain weighted
    sum, since the configured weights sum to 1.
    """
    weights = {Dimension(k): v for k, v in weights.items()}
    modifiers = {Dimension(k): v for k, v in (modifiers or {}).items()}

    total = 0.0
    total_weight = 0.0
    for name, score in category_scores.items():
        dimension = Dimension(name)
        weight = weights.get(dimension, 0.0) * modifiers.get(dimension, 1.0)
        total += score * weight
        total_weight += weight

    if total_weight <= 0:
        return None
    return round(clamp_score(total / total_weight), 2)


def _severity(score: float) -> str:
    if score <= 20:
        return "high"
    if score <= 40:
        return "medium"
    return "low"


class ScoringEngine:
    """Pure function object: identical inputs give identical ContentScores."""

    def __init__(self, config: ScoringRulesConfig):
        self.config = config
        self.categorizer = PageCategorizer(config)

    def score(
        self,
        signals: PageSignals,
        judgments: Sequence[StructuredJudgment],
        as_of: Optional[date] = None,
        brand_keywords: Optional[List[str]] = None,
    ) -> ContentScore:
        """Score one page or project.

        Args:
            signals: Crawler record for the page
            judgments: Judgments from the batch; only unified-kpi ones are used
            as_of: Reference date for freshness; defaults to the crawl date or today
            brand_keywords: Project keywords overriding the configured list

        Returns:
            ContentScore; excluded pages carry no categories and no global score
        """
        as_of = as_of or (signals.crawled_at.date() if signals.crawled_at else date.today())
        category = self.categorizer.categorize(signals)

        if category.analysis_level == AnalysisLevel.EXCLUDED:
            LOGGER.info(f"Page {signals.url or '<project>'} excluded from scoring ({category.category})")
            return ContentScore(page_category=category, rules_version=self.config.version, as_of=as_of)

        kpi_judgments = [j for j in judgments if isinstance(j.data, UnifiedKPIJudgment)]
        rule_input = RuleInput(
            signals=signals,
            judgments=kpi_judgments,
            config=self.config,
            as_of=as_of,
            brand_keywords=list(brand_keywords or []),
        )

        weights = self.config.global_score_formula.weights
        category_scores: Dict[Dimension, CategoryScore] = {}
        for dimension in applicable_dimensions(category, list(self.config.dimensions)):
            category_scores[dimension] = self._score_dimension(dimension, rule_input, category, weights)

        scored = {d: c.score for d, c in category_scores.items() if c.applied_rules > 0}
        global_score = compute_global_score(scored, weights, category.weight_modifiers)

        issues = [issue for c in category_scores.values() for issue in c.issues]
        issues.extend(self._judgment_issues(kpi_judgments, issues))
        recommendations: List[str] = []
        for issue in issues:
            if issue.recommendation and issue.recommendation not in recommendations:
                recommendations.append(issue.recommendation)

        return ContentScore(
            page_category=category,
            global_score=global_score,
            category_scores=category_scores,
            issues=issues,
            recommendations=recommendations,
            rules_version=self.config.version,
            as_of=as_of,
        )

    def _score_dimension(
        self,
        dimension: Dimension,
        rule_input: RuleInput,
        category: PageCategory,
        weights: Mapping[Dimension, float],
    ) -> CategoryScore:
        results: List[RuleResult] = []
        issues: List[ScoreIssue] = []

        for rule_id, rule in self.config.dimensions[dimension].rules.items():
            if not rule.enabled:
                continue
            measurement = RULES[rule_id](rule_input)
            if measurement is None:
                continue
            evidence = [e for e in measurement.evidence if e and e.strip()]
            if not evidence:
                LOGGER.warning(f"Rule {rule_id} produced no evidence; not applied")
                continue

            threshold = find_threshold(measurement.raw_value, rule.thresholds)
            if threshold is None:
                LOGGER.warning(f"Rule {rule_id} value {measurement.raw_value} matches no threshold; not applied")
                continue

            score = clamp_score(threshold.score)
            passed = score >= PASS_SCORE
            results.append(
                RuleResult(
                    rule_id=rule_id,
                    dimension=dimension,
                    raw_value=round(measurement.raw_value, 4),
                    score=score,
                    weight=rule.weight,
                    passed=passed,
                    evidence=evidence,
                    threshold=threshold.description,
                )
            )
            if not passed and measurement.issue:
                issues.append(
                    ScoreIssue(
                        dimension=dimension.value,
                        severity=_severity(score),
                        description=measurement.issue,
                        recommendation=measurement.recommendation,
                        rule_id=rule_id,
                    )
                )

        weight = weights.get(dimension, 0.0) * category.weight_modifiers.get(dimension, 1.0)
        return CategoryScore(
            name=dimension,
            score=compute_category_score(results),
            weight=round(weight, 6),
            applied_rules=len(results),
            passed_rules=sum(1 for r in results if r.passed),
            rule_results=results,
            issues=issues,
            recommendations=[i.recommendation for i in issues if i.recommendation],
        )

    @staticmethod
    def _judgment_issues(
        judgments: Sequence[StructuredJudgment], existing: Sequence[ScoreIssue]
    ) -> List[ScoreIssue]:
        seen = {(issue.dimension, issue.description) for issue in existing}
        issues = []
        for judgment in judgments:
            for kpi_issue in judgment.data.issues:
                dimension = KPI_DIMENSIONS.get(kpi_issue.dimension.lower(), kpi_issue.dimension.lower())
                dimension = dimension.value if isinstance(dimension, Dimension) else dimension
                key = (dimension, kpi_issue.description)
                if key in seen:
                    continue
                seen.add(key)
                issues.append(
                    ScoreIssue(
                        dimension=dimension,
                        severity=kpi_issue.severity,
                        description=kpi_issue.description,
                        recommendation=kpi_issue.recommendation,
                    )
                )
        return issues
