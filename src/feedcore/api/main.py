"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from feedcore import __version__
from feedcore.config.settings import Settings, settings as default_settings
from feedcore.ingestion.cached_api import CachedApi

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(
    settings: Settings | None = None,
    cached_api: CachedApi | None = None,
) -> FastAPI:
    """Build the API.

    Args:
        settings: Settings to use (defaults to the environment)
        cached_api: Pre-built accessors; built from settings at startup if omitted
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager."""
        logger.info("Starting feedcore API...")
        api = cached_api or CachedApi.create(settings)
        app.state.cached_api = api

        yield

        logger.info("Shutting down feedcore API...")
        await api.aclose()
        logger.info("feedcore API shut down")

    app = FastAPI(
        title="feedcore API",
        description="Cached real-time feeds for the situation dashboard",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_methods=["GET", "DELETE"],
        allow_headers=["*"],
    )

    from feedcore.api.routers import alerts, cache, health, market

    app.include_router(health.router, tags=["Health"])
    app.include_router(market.router, prefix="/api/v1/market", tags=["Market Data"])
    app.include_router(alerts.router, prefix="/api/v1/alerts", tags=["Alerts"])
    app.include_router(cache.router, prefix="/api/v1/cache", tags=["Cache"])

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "name": "feedcore API",
            "version": __version__,
            "docs": "/docs" if settings.debug else "disabled",
        }

    return app


configure_logging(default_settings.log_level)
app = create_app()
