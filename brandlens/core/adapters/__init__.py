"""Provider adapters: one closed set of backends behind a single interface."""

from brandlens.core.adapters.base import Completion, ProviderAdapter, parse_structured
from brandlens.core.adapters.registry import (
    LLMProvider,
    ModelBinding,
    ModelSpec,
    ProviderRegistry,
    create_adapter,
    load_model_catalog,
)

__all__ = [
    "Completion",
    "LLMProvider",
    "ModelBinding",
    "ModelSpec",
    "ProviderAdapter",
    "ProviderRegistry",
    "create_adapter",
    "load_model_catalog",
    "parse_structured",
]
