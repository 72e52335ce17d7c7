"""Closed set of provider adapters and the model catalog bound to them."""

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from brandlens.core.adapters.anthropic import AnthropicAdapter
from brandlens.core.adapters.base import ProviderAdapter
from brandlens.core.adapters.chat_completions import (
    MistralAdapter,
    OpenAIAdapter,
    OpenRouterAdapter,
    PerplexityAdapter,
)
from brandlens.core.adapters.gemini import GeminiAdapter
from brandlens.core.adapters.ollama import OllamaAdapter
from brandlens.core.config import BatchSettings, ProviderSettings
from brandlens.core.exceptions import ConfigInvalidError, ProviderUnavailableError
from brandlens.schemas.llm import CallOptions
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


class LLMProvider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    MISTRAL = "mistral"
    PERPLEXITY = "perplexity"
    OPENROUTER = "openrouter"
    OLLAMA = "ollama"


class ModelSpec(BaseModel):
    """One entry of the model catalog."""
    id: str
    provider: LLMProvider
    model: str
    enabled: bool = True
    temperature: float = 0.7
    max_tokens: int = 1000
    web_search: bool = False
    system_prompt: Optional[str] = None

    def call_options(self, timeout: float) -> CallOptions:
        return CallOptions(
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout=timeout,
            system_prompt=self.system_prompt,
            web_search=self.web_search,
        )


class ModelCatalog(BaseModel):
    models: List[ModelSpec] = Field(default_factory=list)


@dataclass
class ModelBinding:
    """A catalog entry bound to the adapter that serves it."""
    spec: ModelSpec
    adapter: ProviderAdapter

    @property
    def model_id(self) -> str:
        return self.spec.id

    @property
    def provider(self) -> str:
        return self.adapter.name


def create_adapter(provider: LLMProvider, settings: ProviderSettings) -> ProviderAdapter:
    """Create the adapter for ``provider`` from settings.

    Raises:
        ConfigInvalidError: If the provider is not part of the supported set
    """
    common = {
        "timeout": settings.timeout,
        "max_retries": settings.max_retries,
        "retry_delay": settings.retry_delay,
    }
    if provider == LLMProvider.OPENAI:
        return OpenAIAdapter(settings.openai_api_key, settings.openai_model, settings.openai_api_url, **common)
    if provider == LLMProvider.ANTHROPIC:
        return AnthropicAdapter(settings.anthropic_api_key, settings.anthropic_model, settings.anthropic_api_url, **common)
    if provider == LLMProvider.GEMINI:
        return GeminiAdapter(settings.gemini_api_key, settings.gemini_model, **common)
    if provider == LLMProvider.MISTRAL:
        return MistralAdapter(settings.mistral_api_key, settings.mistral_model, settings.mistral_api_url, **common)
    if provider == LLMProvider.PERPLEXITY:
        return PerplexityAdapter(settings.perplexity_api_key, settings.perplexity_model, settings.perplexity_api_url, **common)
    if provider == LLMProvider.OPENROUTER:
        return OpenRouterAdapter(settings.openrouter_api_key, settings.openrouter_model, settings.openrouter_api_url, **common)
    if provider == LLMProvider.OLLAMA:
        return OllamaAdapter(settings.ollama_api_url, settings.ollama_model, settings.ollama_enabled, **common)
    raise ConfigInvalidError(f"Unsupported provider: {provider}")


def default_catalog(settings: ProviderSettings) -> List[ModelSpec]:
    """One catalog entry per provider, using each provider's default model."""
    defaults = {
        LLMProvider.OPENAI: settings.openai_model,
        LLMProvider.ANTHROPIC: settings.anthropic_model,
        LLMProvider.GEMINI: settings.gemini_model,
        LLMProvider.MISTRAL: settings.mistral_model,
        LLMProvider.PERPLEXITY: settings.perplexity_model,
        LLMProvider.OPENROUTER: settings.openrouter_model,
        LLMProvider.OLLAMA: settings.ollama_model,
    }
    return [ModelSpec(id=model, provider=provider, model=model) for provider, model in defaults.items()]


def load_model_catalog(path: str) -> List[ModelSpec]:
    """Load a JSON model catalog of the form ``{"models": [...]}``.

    Raises:
        ConfigInvalidError: If the file is missing or does not validate
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
        catalog = ModelCatalog.model_validate_json(raw)
    except OSError as e:
        raise ConfigInvalidError(f"Cannot read model catalog {path}: {e}", original_error=e) from e
    except PydanticValidationError as e:
        raise ConfigInvalidError(f"Invalid model catalog {path}: {e}", original_error=e) from e

    ids = [spec.id for spec in catalog.models]
    duplicates = sorted({model_id for model_id in ids if ids.count(model_id) > 1})
    if duplicates:
        raise ConfigInvalidError(f"Duplicate model ids in catalog {path}: {', '.join(duplicates)}")
    return catalog.models


class ProviderRegistry:
    """Adapters constructed once per process and shared across batches."""

    def __init__(self, adapters: Dict[str, ProviderAdapter], catalog: List[ModelSpec]):
        self._adapters = dict(adapters)
        self._catalog = {spec.id: spec for spec in catalog}

    @classmethod
    def from_settings(
        cls, settings: ProviderSettings, catalog: Optional[List[ModelSpec]] = None
    ) -> "ProviderRegistry":
        adapters = {provider.value: create_adapter(provider, settings) for provider in LLMProvider}
        registry = cls(adapters, catalog if catalog is not None else default_catalog(settings))
        LOGGER.info(
            f"Provider registry ready; available: {[a.name for a in registry.available_adapters()]}"
        )
        return registry

    def apply_concurrency(self, settings: BatchSettings) -> None:
        """Size every adapter's process-wide limiter from the batch settings."""
        for name, adapter in self._adapters.items():
            adapter.set_concurrency(settings.concurrency_for(name))

    def get(self, name: str) -> ProviderAdapter:
        """Return the adapter named ``name``.

        Raises:
            ProviderUnavailableError: If no such adapter exists or it lacks credentials
        """
        adapter = self._adapters.get(name)
        if adapter is None or not adapter.is_available():
            raise ProviderUnavailableError(name)
        return adapter

    def available_adapters(self) -> List[ProviderAdapter]:
        return [adapter for adapter in self._adapters.values() if adapter.is_available()]

    @property
    def catalog(self) -> List[ModelSpec]:
        return list(self._catalog.values())

    def select(self, model_ids: Optional[List[str]] = None) -> List[ModelBinding]:
        """Bind requested (or all enabled) catalog models to available adapters.

        Models whose provider is unavailable are excluded and logged rather
        than treated as failures.

        Raises:
            ConfigInvalidError: If a requested model id is not in the catalog
        """
        if model_ids:
            unknown = [model_id for model_id in model_ids if model_id not in self._catalog]
            if unknown:
                raise ConfigInvalidError(f"Unknown model ids: {', '.join(unknown)}")
            specs = [self._catalog[model_id] for model_id in model_ids]
        else:
            specs = [spec for spec in self._catalog.values() if spec.enabled]

        bindings = []
        for spec in specs:
            try:
                adapter = self.get(spec.provider.value)
            except ProviderUnavailableError as e:
                LOGGER.warning(f"Excluding model {spec.id}: {e}")
                continue
            bindings.append(ModelBinding(spec=spec, adapter=adapter))
        return bindings

    def usage_summary(self) -> Dict[str, Dict]:
        return {
            name: {
                "available": adapter.is_available(),
                "supports_structured_output": adapter.supports_structured_output,
                "supports_search": adapter.supports_search,
                **adapter.usage.snapshot(),
            }
            for name, adapter in self._adapters.items()
        }
