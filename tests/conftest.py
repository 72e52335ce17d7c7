"""Pytest configuration and shared fixtures."""

import asyncio
import json
from datetime import date
from typing import Callable, List, Optional

import pytest

from brandlens.core.adapters.base import Completion, ProviderAdapter
from brandlens.core.adapters.registry import LLMProvider, ModelSpec, ProviderRegistry
from brandlens.core.config import BatchSettings
from brandlens.schemas.llm import CallOptions
from brandlens.schemas.prompts import ProjectContext
from brandlens.schemas.scoring import (
    BrandSignals,
    ContentSignals,
    FreshnessSignals,
    PageSignals,
    SnippetSignals,
    StructureSignals,
)


class FakeAdapter(ProviderAdapter):
    """Scriptable in-process adapter.

    Args:
        name: Provider name; must be one of the LLMProvider values to be catalogued
        responder: Maps a prompt to the response text
        delay: Seconds each call sleeps before answering
        error: Exception raised by every call instead of answering
    """

    def __init__(
        self,
        name: str,
        responder: Optional[Callable[[str], str]] = None,
        delay: float = 0.0,
        error: Optional[Exception] = None,
        api_key: str = "test-key",
    ):
        super().__init__(api_key, default_model=f"{name}-model", timeout=5, max_retries=0, retry_delay=0)
        self.name = name
        self.responder = responder or (lambda prompt: "A plain answer.")
        self.delay = delay
        self.error = error
        self.prompts: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _generate(self, prompt: str, options: CallOptions, model: str) -> Completion:
        self.prompts.append(prompt)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            text = self.responder(prompt)
        finally:
            self.in_flight -= 1
        return Completion(text=text, model_version=f"{model}-v1", input_tokens=10, output_tokens=5)


def build_registry(*adapters: ProviderAdapter) -> ProviderRegistry:
    """Registry with one catalog model per adapter, id ``<name>-model``."""
    catalog = [
        ModelSpec(id=f"{adapter.name}-model", provider=LLMProvider(adapter.name), model=f"{adapter.name}-model")
        for adapter in adapters
    ]
    return ProviderRegistry({adapter.name: adapter for adapter in adapters}, catalog)


UNIFIED_KPI_JSON = {
    "scores": {"authority": 80, "freshness": 70, "structure": 90, "brandAlignment": 60},
    "details": {
        "authority": {"hasAuthor": True, "citationCount": 4, "domainAuthority": "high", "authorCredentials": ["PhD"]},
        "freshness": {"daysSinceUpdate": 30, "hasDateSignals": True},
        "structure": {"h1Count": 1, "avgSentenceWords": 14, "hasSchema": True, "headingHierarchyScore": 90},
        "brand": {"brandMentions": 6, "alignmentIssues": [], "consistencyScore": 80, "missingKeywords": []},
    },
    "issues": [
        {
            "dimension": "brandAlignment",
            "severity": "medium",
            "description": "Tagline missing",
            "recommendation": "Mention the brand tagline in the introduction.",
        }
    ],
    "explanation": "Well sourced and recent.",
}


def battery_responder(prompt: str) -> str:
    """Answer every battery prompt with JSON matching its pipeline."""
    if "generative engine optimization" in prompt:
        return json.dumps(UNIFIED_KPI_JSON)
    if prompt.startswith("What are the best"):
        return 'Here are my picks: {"mentioned": true, "topOfMind": ["Acme", "Globex"]}'
    if prompt.startswith("What is your opinion"):
        return json.dumps({"valence": "positive", "status": "green", "keywords": ["Reliable"], "confidence": 0.9})
    if prompt.startswith("Compare"):
        return json.dumps({"winner": "Acme", "differentiators": ["price"]})
    if prompt.startswith("Describe the brand"):
        return json.dumps({"attributeScores": [{"attribute": "durable", "score": 0.8}, {"attribute": "affordable", "score": 0.6}]})
    if " versus " in prompt:
        return json.dumps({"competitor": "Globex", "brandStrengths": ["price"], "brandWeaknesses": ["support"]})
    return "I am not sure."


@pytest.fixture
def project() -> ProjectContext:
    return ProjectContext(
        project_id="proj-1",
        brand_name="Acme",
        market="France",
        category="running shoes",
        attributes=["durable", "affordable"],
        competitors=["Globex"],
        brand_keywords=["acme", "running"],
    )


@pytest.fixture
def fast_batch_settings() -> BatchSettings:
    return BatchSettings(
        cell_timeout_seconds=2,
        batch_timeout_seconds=None,
        default_concurrency=5,
        provider_concurrency={},
        runs_per_model=1,
        extraction_concurrency=4,
    )


@pytest.fixture
def page_signals() -> PageSignals:
    """A well-built article page."""
    return PageSignals(
        url="https://acme.example/blog/best-running-shoes",
        title="Acme guide to running shoes",
        content=ContentSignals(
            word_count=1500,
            outbound_citations=6,
            citation_domains=["nih.gov", "reuters.com", "blog.example.org"],
            has_author=True,
            author_name="Dr. Jane Doe",
            author_bio="PhD in sports science",
            avg_sentence_words=15,
            avg_paragraph_words=60,
        ),
        structure=StructureSignals(
            h1_count=1,
            heading_hierarchy=["h1", "h2", "h3", "h2"],
            schema_types=["Article"],
            list_count=3,
            table_count=1,
        ),
        freshness=FreshnessSignals(publish_date=date(2024, 1, 10), modified_date=date(2024, 5, 1)),
        brand=BrandSignals(brand_mentions=5, keywords_found=["acme", "running"]),
        snippet=SnippetSignals(qa_blocks=3, list_count=3, extractable_blocks=5),
    )


@pytest.fixture
def make_adapter() -> Callable[..., FakeAdapter]:
    return FakeAdapter


@pytest.fixture
def make_registry() -> Callable[..., ProviderRegistry]:
    return build_registry


@pytest.fixture
def responder() -> Callable[[str], str]:
    return battery_responder
