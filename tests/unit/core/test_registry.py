"""Unit tests for the provider registry and model catalog."""

import json

import pytest

from brandlens.core.adapters.chat_completions import OpenAIAdapter
from brandlens.core.adapters.ollama import OllamaAdapter
from brandlens.core.adapters.registry import (
    LLMProvider,
    ModelSpec,
    ProviderRegistry,
    create_adapter,
    load_model_catalog,
)
from brandlens.core.config import ProviderSettings
from brandlens.core.exceptions import ConfigInvalidError, ProviderUnavailableError


@pytest.fixture
def provider_settings() -> ProviderSettings:
    return ProviderSettings(
        openai_api_key="sk-test",
        anthropic_api_key="",
        gemini_api_key="",
        mistral_api_key="mock",
        perplexity_api_key="",
        openrouter_api_key="",
        ollama_enabled=False,
    )


def test_from_settings_exposes_only_credentialed_adapters(provider_settings):
    registry = ProviderRegistry.from_settings(provider_settings)

    available = sorted(adapter.name for adapter in registry.available_adapters())
    assert available == ["mistral", "openai"]
    assert isinstance(registry.get("openai"), OpenAIAdapter)
    assert registry.get("mistral").is_mock is True


def test_get_unavailable_provider_raises(provider_settings):
    registry = ProviderRegistry.from_settings(provider_settings)

    with pytest.raises(ProviderUnavailableError):
        registry.get("anthropic")
    with pytest.raises(ProviderUnavailableError):
        registry.get("not-a-provider")


def test_select_excludes_unavailable_providers(provider_settings):
    registry = ProviderRegistry.from_settings(provider_settings)

    bindings = registry.select()

    assert sorted(binding.provider for binding in bindings) == ["mistral", "openai"]
    assert {binding.model_id for binding in bindings} == {
        provider_settings.openai_model,
        provider_settings.mistral_model,
    }


def test_select_by_id_and_unknown_id(make_adapter, make_registry):
    registry = make_registry(make_adapter("openai"), make_adapter("anthropic"))

    bindings = registry.select(["anthropic-model"])
    assert [binding.model_id for binding in bindings] == ["anthropic-model"]

    with pytest.raises(ConfigInvalidError):
        registry.select(["missing-model"])


def test_select_skips_disabled_models_by_default(make_adapter):
    adapter = make_adapter("openai")
    catalog = [
        ModelSpec(id="fast", provider=LLMProvider.OPENAI, model="gpt-4o-mini"),
        ModelSpec(id="search", provider=LLMProvider.OPENAI, model="gpt-4o-search-preview", enabled=False, web_search=True),
    ]
    registry = ProviderRegistry({"openai": adapter}, catalog)

    assert [binding.model_id for binding in registry.select()] == ["fast"]
    search = registry.select(["search"])[0]
    options = search.spec.call_options(timeout=30)
    assert options.web_search is True
    assert options.model == "gpt-4o-search-preview"
    assert options.timeout == 30


def test_ollama_available_when_enabled(provider_settings):
    adapter = create_adapter(LLMProvider.OLLAMA, provider_settings.model_copy(update={"ollama_enabled": True}))

    assert isinstance(adapter, OllamaAdapter)
    assert adapter.is_available() is True


@pytest.mark.asyncio
async def test_usage_summary_reports_calls(make_adapter, make_registry):
    adapter = make_adapter("openai")
    registry = make_registry(adapter)

    await adapter.call("hello")

    summary = registry.usage_summary()["openai"]
    assert summary["available"] is True
    assert summary["calls"] == 1
    assert summary["total_tokens"] == 15


def test_load_model_catalog(tmp_path):
    path = tmp_path / "models.json"
    path.write_text(json.dumps({
        "models": [
            {"id": "gpt", "provider": "openai", "model": "gpt-4o"},
            {"id": "claude", "provider": "anthropic", "model": "claude-sonnet", "temperature": 0.2},
        ]
    }))

    catalog = load_model_catalog(str(path))

    assert [spec.id for spec in catalog] == ["gpt", "claude"]
    assert catalog[1].provider == LLMProvider.ANTHROPIC
    assert catalog[1].temperature == 0.2


@pytest.mark.parametrize(
    "document",
    [
        {"models": [{"id": "x", "provider": "unknown", "model": "m"}]},
        {"models": [{"id": "x", "provider": "openai", "model": "a"}, {"id": "x", "provider": "openai", "model": "b"}]},
    ],
)
def test_load_model_catalog_rejects_invalid_documents(tmp_path, document):
    path = tmp_path / "models.json"
    path.write_text(json.dumps(document))

    with pytest.raises(ConfigInvalidError):
        load_model_catalog(str(path))


def test_load_model_catalog_missing_file(tmp_path):
    with pytest.raises(ConfigInvalidError):
        load_model_catalog(str(tmp_path / "absent.json"))
