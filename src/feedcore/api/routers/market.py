"""Market data API endpoints."""

from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query

from feedcore.api.deps import get_cached_api
from feedcore.ingestion.cached_api import CachedApi

router = APIRouter()

Refresh = Annotated[bool, Query(description="Bypass the cache and fetch fresh data")]


def _envelope(data: Any) -> dict[str, Any]:
    return {"timestamp": datetime.now(UTC).isoformat(), "data": data}


@router.get("/indices")
async def market_indices(
    refresh: Refresh = False,
    api: CachedApi = Depends(get_cached_api),
) -> dict[str, Any]:
    """Major indices via ETF proxies."""
    rows = await api.fetch_indices(force_refresh=refresh)
    return _envelope([r.to_dict() for r in rows])


@router.get("/sectors")
async def market_sectors(
    refresh: Refresh = False,
    api: CachedApi = Depends(get_cached_api),
) -> dict[str, Any]:
    """Sector ETF performance."""
    rows = await api.fetch_sector_performance(force_refresh=refresh)
    return _envelope([r.to_dict() for r in rows])


@router.get("/commodities")
async def market_commodities(
    refresh: Refresh = False,
    api: CachedApi = Depends(get_cached_api),
) -> dict[str, Any]:
    """Commodities and VIX via ETF proxies."""
    rows = await api.fetch_commodities(force_refresh=refresh)
    return _envelope([r.to_dict() for r in rows])


@router.get("/crypto")
async def market_crypto(
    refresh: Refresh = False,
    api: CachedApi = Depends(get_cached_api),
) -> dict[str, Any]:
    """Crypto prices."""
    rows = await api.fetch_crypto_prices(force_refresh=refresh)
    return _envelope([r.to_dict() for r in rows])


@router.get("/all")
async def market_all(
    refresh: Refresh = False,
    api: CachedApi = Depends(get_cached_api),
) -> dict[str, Any]:
    """Every market panel in one response."""
    markets = await api.fetch_all_markets(force_refresh=refresh)
    return _envelope(markets.to_dict())


@router.get("/quote/{symbol}")
async def market_quote(
    symbol: str,
    refresh: Refresh = False,
    api: CachedApi = Depends(get_cached_api),
) -> dict[str, Any]:
    """Single symbol quote."""
    try:
        quote = await api.fetch_quote(symbol, force_refresh=refresh)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if quote is None:
        raise HTTPException(status_code=404, detail=f"No quote available for {symbol}")
    return _envelope(quote.to_dict())
