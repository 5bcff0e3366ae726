"""Weather alert endpoints."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from feedcore.api.deps import get_cached_api
from feedcore.ingestion.cached_api import CachedApi

router = APIRouter()


@router.get("")
async def list_alerts(
    states: str | None = Query(None, description="Comma-separated state codes, e.g. TX,CA"),
    refresh: bool = Query(False, description="Bypass the cache and fetch fresh data"),
    api: CachedApi = Depends(get_cached_api),
) -> dict[str, Any]:
    """Active alerts across states, deduplicated and most severe first."""
    codes = [s for s in states.split(",") if s.strip()] if states else None
    try:
        alerts = await api.fetch_alerts_for_states(codes, force_refresh=refresh)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return {
        "timestamp": datetime.now(UTC).isoformat(),
        "count": len(alerts),
        "data": [a.to_dict() for a in alerts],
    }
