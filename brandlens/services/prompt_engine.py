"""Prompt template registry and rendering."""

from dataclasses import dataclass
from string import Formatter
from typing import Dict, Iterable, List, Optional, Tuple

from brandlens.core.exceptions import (
    ConfigInvalidError,
    MissingVariableError,
    PromptRenderError,
    TemplateNotFoundError,
)
from brandlens.prompts import templates
from brandlens.schemas.prompts import PipelineType, ProjectContext, PromptInstance
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class PromptTemplate:
    id: str
    pipeline_type: PipelineType
    text: str

    @property
    def variables(self) -> List[str]:
        """Placeholder names in declaration order, without duplicates."""
        names: List[str] = []
        for _, field_name, _, _ in Formatter().parse(self.text):
            if field_name and field_name not in names:
                names.append(field_name)
        return names


@dataclass(frozen=True)
class PromptRequest:
    """A template to render with extra per-instance variables."""
    template_id: str
    variables: Dict[str, str]
    target: Optional[str] = None


BUILTIN_TEMPLATES: Dict[str, PromptTemplate] = {
    t.id: t
    for t in (
        PromptTemplate("spontaneous", PipelineType.SPONTANEOUS, templates.SPONTANEOUS_PROMPT),
        PromptTemplate("sentiment", PipelineType.SENTIMENT, templates.SENTIMENT_PROMPT),
        PromptTemplate("comparison", PipelineType.COMPARISON, templates.COMPARISON_PROMPT),
        PromptTemplate("accuracy", PipelineType.ACCURACY, templates.ACCURACY_PROMPT),
        PromptTemplate("brand-battle", PipelineType.BRAND_BATTLE, templates.BRAND_BATTLE_PROMPT),
        PromptTemplate("unified-kpi", PipelineType.UNIFIED_KPI, templates.UNIFIED_KPI_PROMPT),
        PromptTemplate("spontaneous-custom", PipelineType.SPONTANEOUS, templates.CUSTOM_QUESTION_PROMPT),
        PromptTemplate("sentiment-custom", PipelineType.SENTIMENT, templates.CUSTOM_QUESTION_PROMPT),
    )
}

ANALYSIS_GUIDANCE: Dict[PipelineType, str] = {
    PipelineType.SPONTANEOUS: templates.SPONTANEOUS_GUIDANCE,
    PipelineType.SENTIMENT: templates.SENTIMENT_GUIDANCE,
    PipelineType.COMPARISON: templates.COMPARISON_GUIDANCE,
    PipelineType.ACCURACY: templates.ACCURACY_GUIDANCE,
    PipelineType.BRAND_BATTLE: templates.BRAND_BATTLE_GUIDANCE,
}

DEFAULT_PIPELINES = (
    PipelineType.SPONTANEOUS,
    PipelineType.SENTIMENT,
    PipelineType.COMPARISON,
    PipelineType.ACCURACY,
    PipelineType.BRAND_BATTLE,
)


class PromptTemplateEngine:
    """Renders named templates by substituting context variables."""

    def __init__(self, templates_by_id: Optional[Dict[str, PromptTemplate]] = None):
        self.templates = dict(templates_by_id if templates_by_id is not None else BUILTIN_TEMPLATES)

    def get(self, template_id: str) -> PromptTemplate:
        try:
            return self.templates[template_id]
        except KeyError:
            raise TemplateNotFoundError(template_id) from None

    def render(self, template_id: str, context: Dict[str, str]) -> str:
        """Render ``template_id`` with ``context``.

        Raises:
            TemplateNotFoundError: If the template id is unknown
            MissingVariableError: If a placeholder has no supplied value
        """
        template = self.get(template_id)
        missing = [name for name in template.variables if context.get(name) is None]
        if missing:
            raise MissingVariableError(template_id, missing)
        return template.text.format_map({name: context[name] for name in template.variables}).strip()

    def build_instance(
        self, template_id: str, context: Dict[str, str], target: Optional[str] = None
    ) -> PromptInstance:
        template = self.get(template_id)
        text = self.render(template_id, context)
        return PromptInstance(
            pipeline_type=template.pipeline_type,
            template_id=template_id,
            text=text,
            context=dict(context),
            target=target,
        )

    def build_instances(
        self, base_context: Dict[str, str], requests: Iterable[PromptRequest]
    ) -> Tuple[List[PromptInstance], List[Dict[str, str]]]:
        """Render every request, skipping (and logging) the ones that fail.

        Returns:
            Tuple of rendered instances and skip records (template id and reason)
        """
        instances: List[PromptInstance] = []
        skipped: List[Dict[str, str]] = []
        for request in requests:
            context = {**base_context, **request.variables}
            try:
                instances.append(self.build_instance(request.template_id, context, request.target))
            except PromptRenderError as e:
                LOGGER.warning(f"Skipping prompt instance: {e}")
                skipped.append({"template_id": request.template_id, "reason": str(e)})
        return instances, skipped

    def battery_requests(
        self,
        project: ProjectContext,
        pipelines: Iterable[PipelineType] = DEFAULT_PIPELINES,
    ) -> List[PromptRequest]:
        """Expand a project into the prompt requests of the analysis battery.

        Comparison and brand-battle prompts are issued once per competitor;
        custom questions are added for the pipelines that define them.
        """
        requests: List[PromptRequest] = []
        for pipeline in pipelines:
            if pipeline in (PipelineType.COMPARISON, PipelineType.BRAND_BATTLE):
                for competitor in project.competitors:
                    requests.append(
                        PromptRequest(pipeline.value, {"competitor": competitor}, target=competitor)
                    )
            elif pipeline == PipelineType.UNIFIED_KPI:
                continue
            else:
                requests.append(PromptRequest(pipeline.value, {}))

            for question in project.custom_questions.get(pipeline, []):
                requests.append(PromptRequest(f"{pipeline.value}-custom", {"question": question}))
        return requests

    def build_battery(
        self,
        project: ProjectContext,
        pipelines: Iterable[PipelineType] = DEFAULT_PIPELINES,
    ) -> Tuple[List[PromptInstance], List[Dict[str, str]]]:
        return self.build_instances(project.template_context(), self.battery_requests(project, pipelines))

    def analysis_guidance(self, pipeline_type: PipelineType, context: Dict[str, str]) -> str:
        """Render the judging instructions for a pipeline, or an empty string."""
        guidance = ANALYSIS_GUIDANCE.get(pipeline_type)
        if guidance is None:
            return ""
        try:
            return guidance.format_map(_DefaultDict(context)).strip()
        except (KeyError, ValueError):
            return ""

    def validate_requests(self, base_context: Dict[str, str], requests: Iterable[PromptRequest]) -> None:
        """Check requests against registered templates before a run.

        Raises:
            ConfigInvalidError: Listing every unknown template and missing variable
        """
        problems = []
        for request in requests:
            try:
                template = self.get(request.template_id)
            except TemplateNotFoundError as e:
                problems.append(str(e))
                continue
            context = {**base_context, **request.variables}
            missing = [name for name in template.variables if context.get(name) is None]
            if missing:
                problems.append(str(MissingVariableError(request.template_id, missing)))
        if problems:
            raise ConfigInvalidError("Invalid prompt set: " + "; ".join(problems))


class _DefaultDict(dict):
    def __missing__(self, key):
        return ""
