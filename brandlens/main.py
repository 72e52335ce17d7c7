"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
from uuid import uuid4

from fastapi import FastAPI, Request
from pydantic import BaseModel, Field

from brandlens.api.router import api_router
from brandlens.api.routes import health
from brandlens.core.adapters.registry import ProviderRegistry, load_model_catalog
from brandlens.core.config import settings
from brandlens.database.client import db_client
from brandlens.services.scoring.config_loader import load_scoring_rules
from brandlens.utils.logging import get_logger, set_log_level

LOGGER = get_logger(__name__, level=settings.log_level)


class RootResponse(BaseModel):
    """Root endpoint response payload."""

    message: str = Field(..., description="Service status message")
    version: str = Field(..., description="Running application version")
    docs: str = Field(..., description="Path to the interactive API docs")
    health: str = Field(..., description="Path to the health check endpoint")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    set_log_level(settings.log_level)
    LOGGER.info(
        "Starting application",
        extra={"app_name": settings.app_name, "version": settings.app_version, "environment": settings.environment},
    )

    # Configuration errors are fatal at startup.
    catalog = None
    if settings.scoring.models_config_path:
        catalog = load_model_catalog(settings.scoring.models_config_path)
    app.state.settings = settings
    app.state.registry = ProviderRegistry.from_settings(settings.providers, catalog)
    app.state.registry.apply_concurrency(settings.batch)
    app.state.scoring_rules = load_scoring_rules(settings.scoring.rules_path)

    try:
        await db_client.connect()
        await db_client.create_tables()
    except Exception as e:
        LOGGER.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    LOGGER.info("Shutting down application")
    try:
        await db_client.disconnect()
    except Exception as e:
        LOGGER.error("Error closing database", exc_info=True, extra={"error": str(e)})


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Brand visibility, sentiment and content scoring across generative AI models",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


@app.middleware("http")
async def add_correlation_id(request: Request, call_next):
    correlation_id = request.headers.get("X-Correlation-ID", uuid4().hex[:12])
    request.state.correlation_id = correlation_id
    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


app.include_router(api_router, prefix=settings.api_v1_prefix)
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get(
    "/",
    response_model=RootResponse,
    tags=["Root"],
    summary="Root endpoint",
    operation_id="get_public_root_metadata",
)
async def root() -> RootResponse:
    return RootResponse(
        message="Server is running",
        version=settings.app_version,
        docs="/docs",
        health="/health",
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("brandlens.main:app", host=settings.host, port=settings.port)
