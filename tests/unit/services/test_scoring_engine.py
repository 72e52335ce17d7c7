"""Unit tests for the scoring engine, threshold tables and rules loading."""

import json
from datetime import date

import pytest
import yaml

from brandlens.core.exceptions import ConfigInvalidError
from brandlens.schemas.judgments import Provenance, StructuredJudgment, UnifiedKPIJudgment
from brandlens.schemas.prompts import PipelineType
from brandlens.schemas.scoring import AnalysisLevel, Dimension, PageSignals, RuleResult, ScoringThreshold
from brandlens.services.extraction.structured_extractor import fallback_data
from brandlens.services.scoring.config_loader import load_scoring_rules, validate_scoring_rules
from brandlens.services.scoring.defaults import default_scoring_rules
from brandlens.services.scoring.engine import ScoringEngine, compute_category_score, compute_global_score
from brandlens.services.scoring.thresholds import bands, check_threshold_table, find_threshold

AS_OF = date(2024, 6, 1)


@pytest.fixture
def engine() -> ScoringEngine:
    return ScoringEngine(default_scoring_rules())


@pytest.fixture
def kpi_judgment() -> StructuredJudgment:
    data = UnifiedKPIJudgment.model_validate({
        "scores": {"authority": 85, "freshness": 70, "structure": 90, "brandAlignment": 65, "snippetExtractability": 75},
        "issues": [{"dimension": "brandAlignment", "severity": "medium", "description": "Tagline missing",
                    "recommendation": "Add the tagline."}],
    })
    return StructuredJudgment(
        pipeline_type=PipelineType.UNIFIED_KPI,
        data=data,
        provenance=Provenance.EXTRACTED,
        provider="openai",
        model="gpt-4o",
    )


def test_default_threshold_tables_have_no_gaps_or_overlaps():
    config = default_scoring_rules()
    sample_values = [-1e9, -1, 0, 0.5, 1, 2, 2.5, 3, 20, 20.99, 21, 40, 41, 60.5, 61, 80, 81, 90, 91, 100, 181, 366, 1e9]

    for dimension, dimension_config in config.dimensions.items():
        for rule_id, rule in dimension_config.rules.items():
            assert check_threshold_table(rule.thresholds) == [], f"{dimension.value}.{rule_id}"
            for value in sample_values:
                matches = [t for t in rule.thresholds if t.contains(value)]
                assert len(matches) == 1, f"{rule_id} at {value}"


def test_overlapping_table_first_declared_match_wins():
    table = [
        ScoringThreshold(min=0, max=50, score=10, description="first"),
        ScoringThreshold(min=40, max=100, score=90, description="second"),
    ]

    assert find_threshold(45, table).description == "first"
    assert find_threshold(75, table).description == "second"
    assert find_threshold(150, table) is None
    problems = check_threshold_table(table)
    assert any("overlap" in problem for problem in problems)
    assert any("below 0" in problem for problem in problems)


def test_bands_builds_contiguous_tables():
    table = bands([10, 20], [0, 50, 100])

    assert [(t.min, t.max) for t in table] == [(None, 10), (10, 20), (20, None)]
    assert find_threshold(10, table).score == 50
    with pytest.raises(ValueError):
        bands([10], [1, 2, 3])


def test_global_score_is_weighted_sum():
    scores = {"authority": 80, "freshness": 60, "structure": 70, "brand": 90}
    weights = {"authority": 0.3, "freshness": 0.2, "structure": 0.2, "brand": 0.3}

    assert compute_global_score(scores, weights) == 77.0


def test_global_score_renormalizes_over_present_categories():
    weights = {"authority": 0.5, "brand": 0.5}

    assert compute_global_score({"authority": 80}, weights) == 80.0
    assert compute_global_score({"authority": 80, "brand": 40}, weights, {"brand": 3.0}) == 50.0
    assert compute_global_score({}, weights) is None


def test_category_score_is_weighted_mean_of_rules():
    results = [
        RuleResult(rule_id="a", dimension=Dimension.AUTHORITY, score=100, weight=1, passed=True, evidence=["x"]),
        RuleResult(rule_id="b", dimension=Dimension.AUTHORITY, score=40, weight=2, passed=False, evidence=["y"]),
    ]

    assert compute_category_score(results) == 60.0
    assert compute_category_score([]) == 0.0


def test_score_article_page(engine, page_signals, kpi_judgment):
    result = engine.score(page_signals, [kpi_judgment], as_of=AS_OF, brand_keywords=["acme", "running"])

    assert result.page_category.category == "blog_article"
    assert result.page_category.analysis_level == AnalysisLevel.FULL
    assert set(result.category_scores) == set(Dimension)
    for category in result.category_scores.values():
        assert 0 <= category.score <= 100
        assert category.applied_rules > 0
        for rule in category.rule_results:
            assert rule.evidence
    assert result.global_score is not None
    assert 0 <= result.global_score <= 100
    assert result.rules_version == "2024.1"
    assert any(issue.description == "Tagline missing" and issue.dimension == "brand" for issue in result.issues)


def test_scoring_is_idempotent(engine, page_signals, kpi_judgment):
    first = engine.score(page_signals, [kpi_judgment], as_of=AS_OF)
    second = engine.score(page_signals, [kpi_judgment], as_of=AS_OF)

    assert first.model_dump() == second.model_dump()


def test_excluded_page_has_no_scores(engine):
    signals = PageSignals(url="https://acme.example/privacy", title="Privacy policy")

    result = engine.score(signals, [], as_of=AS_OF)

    assert result.page_category.analysis_level == AnalysisLevel.EXCLUDED
    assert result.category_scores == {}
    assert result.global_score is None


def test_limited_page_scores_structure_and_snippet_only(engine, page_signals):
    signals = page_signals.model_copy(update={"url": "https://acme.example/category/shoes", "title": "Shoes"})
    signals.structure = signals.structure.model_copy(update={"schema_types": []})

    result = engine.score(signals, [], as_of=AS_OF)

    assert result.page_category.category == "navigation_category"
    assert set(result.category_scores) == {Dimension.STRUCTURE, Dimension.SNIPPET}


def test_fallback_judgment_scores_as_neutral(engine):
    fallback = StructuredJudgment(
        pipeline_type=PipelineType.UNIFIED_KPI,
        data=fallback_data(PipelineType.UNIFIED_KPI),
        provenance=Provenance.FALLBACK,
    )

    result = engine.score(PageSignals(), [fallback], as_of=AS_OF)

    llm_rule = next(r for r in result.category_scores[Dimension.AUTHORITY].rule_results if r.rule_id == "llm_authority")
    assert llm_rule.raw_value == 50
    assert llm_rule.score == 60


def test_rules_without_measurement_are_not_applied(engine):
    result = engine.score(PageSignals(), [], as_of=AS_OF)

    freshness_rules = {r.rule_id for r in result.category_scores[Dimension.FRESHNESS].rule_results}
    assert "content_age" not in freshness_rules
    assert "llm_freshness" not in freshness_rules
    assert "date_signals" in freshness_rules


def test_load_default_rules_without_path():
    config = load_scoring_rules(None)

    assert config.version == "2024.1"
    assert sum(config.global_score_formula.weights.values()) == pytest.approx(1.0)


def test_load_rules_from_yaml(tmp_path):
    document = default_scoring_rules().model_dump(mode="json")
    document["version"] = "2025.2"
    path = tmp_path / "rules.yaml"
    path.write_text(yaml.safe_dump(document))

    assert load_scoring_rules(str(path)).version == "2025.2"


def test_weights_not_summing_to_one_are_rejected(tmp_path):
    document = default_scoring_rules().model_dump(mode="json")
    document["global_score_formula"]["weights"]["authority"] = 0.5
    path = tmp_path / "rules.json"
    path.write_text(json.dumps(document))

    with pytest.raises(ConfigInvalidError):
        load_scoring_rules(str(path))


def test_unparseable_rules_file_is_rejected(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text("{not json")

    with pytest.raises(ConfigInvalidError):
        load_scoring_rules(str(path))


def test_validate_rejects_unknown_rule_and_gapped_table():
    config = default_scoring_rules()
    rules = config.dimensions[Dimension.AUTHORITY].rules
    rules["made_up"] = rules["outbound_citations"]
    rules["outbound_citations"] = rules["outbound_citations"].model_copy(update={
        "thresholds": [ScoringThreshold(min=None, max=1, score=20), ScoringThreshold(min=2, max=None, score=100)]
    })

    with pytest.raises(ConfigInvalidError) as exc_info:
        validate_scoring_rules(config)

    message = str(exc_info.value)
    assert "made_up: unknown rule" in message
    assert "gap between 1" in message
