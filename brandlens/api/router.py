from fastapi import APIRouter

from brandlens.api.routes import analyses, providers, variations

api_router = APIRouter()

api_router.include_router(providers.router, prefix="/providers", tags=["Providers"])
api_router.include_router(analyses.router, prefix="/projects", tags=["Analyses"])
api_router.include_router(variations.router, prefix="/projects", tags=["Variations"])

__all__ = ["api_router"]
