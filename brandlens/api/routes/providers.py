"""Provider availability and usage endpoints."""

from typing import Annotated, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from brandlens.api.deps import get_registry
from brandlens.core.adapters.registry import ProviderRegistry

router = APIRouter()


class ProviderStatus(BaseModel):
    name: str
    available: bool
    supports_structured_output: bool
    supports_search: bool
    calls: int = 0
    failures: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    models: List[str] = Field(default_factory=list, description="Catalog model ids served by this provider")


class ProvidersResponse(BaseModel):
    providers: List[ProviderStatus]


@router.get(
    "",
    response_model=ProvidersResponse,
    summary="List providers",
    description="Availability, capabilities and cumulative usage of every provider adapter",
    operation_id="list_providers",
)
async def list_providers(
    registry: Annotated[ProviderRegistry, Depends(get_registry)],
) -> ProvidersResponse:
    models_by_provider = {}
    for spec in registry.catalog:
        models_by_provider.setdefault(spec.provider.value, []).append(spec.id)

    return ProvidersResponse(
        providers=[
            ProviderStatus(name=name, models=models_by_provider.get(name, []), **summary)
            for name, summary in registry.usage_summary().items()
        ]
    )
