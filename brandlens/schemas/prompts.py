"""Prompt pipeline types, rendered prompt instances and project context."""

from enum import Enum
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class PipelineType(str, Enum):
    """Named analysis modes; each selects a prompt template and a judgment schema."""
    SPONTANEOUS = "spontaneous"
    SENTIMENT = "sentiment"
    COMPARISON = "comparison"
    ACCURACY = "accuracy"
    BRAND_BATTLE = "brand-battle"
    UNIFIED_KPI = "unified-kpi"


class PromptInstance(BaseModel):
    """A rendered prompt, immutable once built."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    pipeline_type: PipelineType
    template_id: str
    text: str
    context: Dict[str, str] = Field(default_factory=dict)
    target: Optional[str] = None


class ProjectContext(BaseModel):
    """The brand-project an analysis runs for."""
    project_id: str
    brand_name: str
    market: str = ""
    category: str = ""
    language: str = "en"
    attributes: List[str] = Field(default_factory=list)
    competitors: List[str] = Field(default_factory=list)
    brand_keywords: List[str] = Field(default_factory=list)
    custom_questions: Dict[PipelineType, List[str]] = Field(default_factory=dict)

    def template_context(self) -> Dict[str, str]:
        """Flatten the project into template substitution variables."""
        return {
            "brand_name": self.brand_name,
            "market": self.market,
            "category": self.category,
            "language": self.language,
            "attributes": ", ".join(self.attributes),
            "competitors": ", ".join(self.competitors),
            "brand_keywords": ", ".join(self.brand_keywords),
        }
