"""Health check endpoints."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Request

from feedcore import __version__
from feedcore.api.deps import get_cached_api
from feedcore.ingestion.cached_api import CachedApi

router = APIRouter()


@router.get("/health")
async def health_check(
    request: Request,
    api: CachedApi = Depends(get_cached_api),
) -> dict[str, Any]:
    """Basic health check with cache occupancy."""
    stats = api.get_cache_stats()
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": __version__,
        "environment": request.app.state.settings.app_env,
        "cache_entries": stats.entry_count,
        "finnhub_configured": request.app.state.settings.has_finnhub_key,
    }


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe."""
    return {"status": "alive"}
