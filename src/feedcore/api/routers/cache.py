"""Cache management endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from feedcore.api.deps import get_cached_api
from feedcore.ingestion.cached_api import CachedApi

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/stats")
async def cache_stats(api: CachedApi = Depends(get_cached_api)) -> dict[str, Any]:
    """Hit/miss counters and occupancy."""
    return api.get_cache_stats().to_dict()


@router.get("/age/{name}")
async def cache_age(name: str, api: CachedApi = Depends(get_cached_api)) -> dict[str, Any]:
    """Seconds since the entry for name was stored."""
    age = api.get_cache_age(name)
    if age is None:
        raise HTTPException(status_code=404, detail=f"Nothing cached for {name}")
    return {"key": api.cache_key_for(name), "age_seconds": age}


@router.delete("")
async def invalidate_cache(
    pattern: str = Query(..., min_length=1, description="Substring of keys to drop"),
    api: CachedApi = Depends(get_cached_api),
) -> dict[str, Any]:
    """Drop every entry whose key contains pattern."""
    removed = api.invalidate_cache(pattern)
    logger.info(f"Invalidated {removed} cache entries matching {pattern!r}")
    return {"pattern": pattern, "removed": removed}


@router.delete("/all")
async def clear_cache(api: CachedApi = Depends(get_cached_api)) -> dict[str, str]:
    """Drop everything."""
    api.clear_all_caches()
    logger.info("Cache cleared via API")
    return {"status": "cleared"}
