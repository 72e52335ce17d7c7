"""Unit tests for the prompt template engine."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from brandlens.core.exceptions import ConfigInvalidError, MissingVariableError, TemplateNotFoundError
from brandlens.schemas.prompts import PipelineType
from brandlens.services.prompt_engine import PromptRequest, PromptTemplate, PromptTemplateEngine


@pytest.fixture
def engine() -> PromptTemplateEngine:
    return PromptTemplateEngine()


def test_render_substitutes_variables(engine):
    text = engine.render("comparison", {"brand_name": "Acme", "competitor": "Globex", "market": "France"})

    assert "Compare Acme and Globex for a customer in France" in text
    assert "{" not in text


def test_render_unknown_template(engine):
    with pytest.raises(TemplateNotFoundError):
        engine.render("does-not-exist", {})


def test_render_missing_variable_lists_names(engine):
    with pytest.raises(MissingVariableError) as exc_info:
        engine.render("comparison", {"brand_name": "Acme"})

    assert exc_info.value.variables == ["competitor", "market"]


def test_literal_braces_survive_rendering(engine):
    text = engine.render(
        "unified-kpi",
        {"brand_name": "Acme", "url": "https://acme.example", "title": "Home", "brand_keywords": "acme", "page_signals": "{}"},
    )

    assert '"brandAlignment": 0' in text


def test_template_variables_in_order():
    template = PromptTemplate("t", PipelineType.SENTIMENT, "{a} and {b} then {a}")

    assert template.variables == ["a", "b"]


def test_build_battery_expands_competitors_and_custom_questions(engine, project):
    project = project.model_copy(update={
        "competitors": ["Globex", "Initech"],
        "custom_questions": {PipelineType.SENTIMENT: ["Is Acme good value?"]},
    })

    instances, skipped = engine.build_battery(project)

    assert skipped == []
    by_template = {}
    for instance in instances:
        by_template.setdefault(instance.template_id, []).append(instance)
    assert len(by_template["spontaneous"]) == 1
    assert len(by_template["sentiment"]) == 1
    assert [i.target for i in by_template["comparison"]] == ["Globex", "Initech"]
    assert [i.target for i in by_template["brand-battle"]] == ["Globex", "Initech"]
    assert by_template["sentiment-custom"][0].text == "Is Acme good value?"
    assert by_template["sentiment-custom"][0].pipeline_type == PipelineType.SENTIMENT
    assert "unified-kpi" not in by_template


def test_build_instances_skips_failures_and_keeps_the_rest(engine, project):
    requests = [
        PromptRequest("sentiment", {}),
        PromptRequest("comparison", {}),
        PromptRequest("nope", {}),
    ]

    instances, skipped = engine.build_instances(project.template_context(), requests)

    assert [i.template_id for i in instances] == ["sentiment"]
    assert [s["template_id"] for s in skipped] == ["comparison", "nope"]


def test_instances_are_immutable(engine, project):
    instance = engine.build_instance("sentiment", project.template_context())

    with pytest.raises(PydanticValidationError):
        instance.text = "changed"


def test_validate_requests_reports_every_problem(engine, project):
    with pytest.raises(ConfigInvalidError) as exc_info:
        engine.validate_requests(
            project.template_context(),
            [PromptRequest("comparison", {}), PromptRequest("missing", {})],
        )

    message = str(exc_info.value)
    assert "competitor" in message
    assert "missing" in message


def test_analysis_guidance_renders_context(engine):
    guidance = engine.analysis_guidance(PipelineType.COMPARISON, {"brand_name": "Acme", "competitor": "Globex"})

    assert "Acme" in guidance and "Globex" in guidance
    assert engine.analysis_guidance(PipelineType.UNIFIED_KPI, {}) == ""
