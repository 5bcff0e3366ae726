"""Cached API functions.

Every accessor except fetch_quote goes through with_cache() under its own key
and TTL; quotes are served by the quote cache directly. All accessors take
force_refresh to bypass the cache. Stale-on-error fallback is not done here:
the quote cache and the crypto client handle upstream failures themselves, and
an exception raised by a fetch propagates unchanged without touching the cache.
"""

import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

import httpx

from feedcore.config.constants import CACHE_KEY_PREFIX, CACHE_KEYS, QUOTE_KEY_PREFIX
from feedcore.config.settings import Settings
from feedcore.ingestion.aggregator import MultiSourceAggregator
from feedcore.ingestion.alerts import AlertService, normalize_states
from feedcore.ingestion.cache import CacheStats, TTLCache
from feedcore.ingestion.markets import AllMarkets, MarketItem, MarketService, SectorPerformance
from feedcore.ingestion.quote_cache import QuoteCache
from feedcore.ingestion.rate_limiter import RateLimiterRegistry
from feedcore.ingestion.sources.coincap import CoinCapClient, CryptoItem
from feedcore.ingestion.sources.finnhub import FinnhubClient, Quote
from feedcore.ingestion.sources.nws import NWSClient, WeatherAlert

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_cache(
    cache: TTLCache,
    key: str,
    fetch_func: Callable[[], Awaitable[T]],
    ttl: float,
    force_refresh: bool = False,
) -> T:
    """Serve key from cache, or fetch, store and return.

    Args:
        cache: Cache store
        key: Cache key; embed any parameters so distinct calls never collide
        fetch_func: Async function to fetch data
        ttl: Seconds the result stays fresh
        force_refresh: Skip the cache lookup and always fetch

    Returns:
        Cached or freshly fetched data. A None result is returned uncached
        and drops any previous entry for key.
    """
    if not force_refresh:
        cached = cache.get(key)
        if cached is not None:
            return cached

    data = await fetch_func()
    if data is not None:
        cache.set(key, data, ttl)
    else:
        cache.invalidate(key)
    return data


class CachedApi:
    """All cached dashboard accessors over one cache and limiter registry."""

    def __init__(
        self,
        cache: TTLCache,
        markets: MarketService,
        alerts: AlertService,
        settings: Settings,
        limiters: RateLimiterRegistry | None = None,
        closers: Sequence[Callable[[], Awaitable[None]]] = (),
    ) -> None:
        self.cache = cache
        self.markets = markets
        self.alerts = alerts
        self.settings = settings
        self.limiters = limiters or RateLimiterRegistry()
        self._closers = list(closers)

    @classmethod
    def create(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> "CachedApi":
        """Build the cache, limiter and provider clients from settings.

        Args:
            settings: Application settings
            transport: Optional httpx transport shared by all clients (tests)
            clock: Monotonic clock for cache freshness
        """
        cache = TTLCache(max_entries=settings.cache_max_entries, clock=clock)
        limiters = RateLimiterRegistry()

        def _client(timeout: float, **kwargs: Any) -> httpx.AsyncClient:
            return httpx.AsyncClient(timeout=timeout, transport=transport, **kwargs)

        finnhub = FinnhubClient(
            api_key=settings.finnhub_api_key.get_secret_value() if settings.finnhub_api_key else "",
            base_url=settings.finnhub_base_url,
            client=_client(settings.quote_timeout),
        )
        coincap = CoinCapClient(
            base_url=settings.coincap_base_url,
            client=_client(settings.crypto_timeout),
        )
        nws = NWSClient(
            base_url=settings.nws_base_url,
            client=_client(
                settings.alerts_timeout,
                headers={"User-Agent": settings.nws_user_agent, "Accept": "application/geo+json"},
            ),
        )

        if not finnhub.configured:
            logger.warning("Finnhub API key not configured; market quotes will be unavailable")

        quote_cache = QuoteCache(
            fetcher=finnhub.get_quote,
            cache=cache,
            rate_limiter=limiters.get("finnhub", settings.rate_limit_finnhub),
            ttl=settings.cache_ttl_quote,
            timeout=settings.quote_timeout,
        )
        aggregator = MultiSourceAggregator(
            batch_size=settings.aggregator_batch_size,
            batch_pause=settings.aggregator_batch_pause,
            timeout=settings.alerts_timeout,
        )

        return cls(
            cache=cache,
            markets=MarketService(quote_cache, coincap),
            alerts=AlertService(nws, aggregator),
            settings=settings,
            limiters=limiters,
            closers=[finnhub.aclose, coincap.aclose, nws.aclose],
        )

    async def aclose(self) -> None:
        """Close provider clients and drop all cached data."""
        for close in self._closers:
            try:
                await close()
            except Exception as e:
                logger.warning(f"Error closing client: {e}")
        self.cache.clear()
        logger.info("Cached API shut down")

    # ============ Market Data ============

    async def fetch_crypto_prices(self, force_refresh: bool = False) -> list[CryptoItem]:
        """TTL: cache_ttl_crypto (2 minutes)."""
        return await with_cache(
            self.cache,
            CACHE_KEYS["crypto"],
            self.markets.fetch_crypto_prices,
            self.settings.cache_ttl_crypto,
            force_refresh,
        )

    async def fetch_indices(self, force_refresh: bool = False) -> list[MarketItem]:
        return await with_cache(
            self.cache,
            CACHE_KEYS["indices"],
            self.markets.fetch_indices,
            self.settings.cache_ttl_markets,
            force_refresh,
        )

    async def fetch_sector_performance(self, force_refresh: bool = False) -> list[SectorPerformance]:
        return await with_cache(
            self.cache,
            CACHE_KEYS["sectors"],
            self.markets.fetch_sector_performance,
            self.settings.cache_ttl_markets,
            force_refresh,
        )

    async def fetch_commodities(self, force_refresh: bool = False) -> list[MarketItem]:
        return await with_cache(
            self.cache,
            CACHE_KEYS["commodities"],
            self.markets.fetch_commodities,
            self.settings.cache_ttl_markets,
            force_refresh,
        )

    async def fetch_all_markets(self, force_refresh: bool = False) -> AllMarkets:
        return await with_cache(
            self.cache,
            CACHE_KEYS["all_markets"],
            self.markets.fetch_all_markets,
            self.settings.cache_ttl_markets,
            force_refresh,
        )

    async def fetch_quote(self, symbol: str, force_refresh: bool = False) -> Quote | None:
        """Single quote, served straight from the quote cache.

        The quote cache owns the TTL and the stale fallback for quotes, so no
        second entry is kept here; a stale quote keeps its real age.

        Raises:
            ValueError: symbol is blank
        """
        return await self.markets.quote_cache.fetch_quote(
            symbol.strip().upper(), force_refresh=force_refresh
        )

    # ============ Alerts ============

    async def fetch_alerts_for_states(
        self,
        state_codes: Sequence[str] | None = None,
        force_refresh: bool = False,
    ) -> list[WeatherAlert]:
        """TTL: cache_ttl_alerts (5 minutes), keyed by the sorted state set."""
        states = normalize_states(state_codes or self.settings.default_alert_states)
        key = f"{CACHE_KEYS['alerts']}:{','.join(sorted(states))}"
        return await with_cache(
            self.cache,
            key,
            lambda: self.alerts.fetch_alerts_for_states(states),
            self.settings.cache_ttl_alerts,
            force_refresh,
        )

    # ============ Cache Management ============

    def clear_all_caches(self) -> None:
        self.cache.clear()

    def invalidate_cache(self, pattern: str) -> int:
        return self.cache.invalidate_pattern(pattern)

    def get_cache_stats(self) -> CacheStats:
        return self.cache.stats()

    @staticmethod
    def cache_key_for(name: str) -> str:
        """Accessor name to cache key; quote keys such as "quote:AAPL" pass through."""
        if name.startswith(f"{QUOTE_KEY_PREFIX}:"):
            return name
        return f"{CACHE_KEY_PREFIX}:{name}"

    def get_cache_age(self, name: str) -> int | None:
        """Age in whole seconds of the entry for name, fresh or not."""
        age = self.cache.get_age(self.cache_key_for(name))
        return round(age) if age is not None else None
