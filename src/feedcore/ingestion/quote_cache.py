"""Per-symbol quote cache for a metered, rate-limited provider."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from feedcore.config.constants import QUOTE_KEY_PREFIX
from feedcore.ingestion.base import Failure, FailureKind, FetchOutcome, capture
from feedcore.ingestion.cache import TTLCache
from feedcore.ingestion.rate_limiter import RateLimiter
from feedcore.ingestion.sources.finnhub import Quote

logger = logging.getLogger(__name__)

QuoteFetcher = Callable[[str], Awaitable[Quote | None]]


class QuoteCache:
    """Serves quotes from cache, rate-limits misses, falls back to stale data.

    fetch_quote() has no error channel: None means "no usable quote", either
    because the provider does not know the symbol or because the upstream failed
    and nothing was ever cached.
    """

    def __init__(
        self,
        fetcher: QuoteFetcher,
        cache: TTLCache,
        rate_limiter: RateLimiter,
        ttl: float = 60.0,
        timeout: float | None = 10.0,
        key_prefix: str = QUOTE_KEY_PREFIX,
    ) -> None:
        self.fetcher = fetcher
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.ttl = ttl
        self.timeout = timeout
        self.key_prefix = key_prefix

    def cache_key(self, symbol: str) -> str:
        return f"{self.key_prefix}:{symbol.upper()}"

    async def _attempt(self, symbol: str) -> FetchOutcome[Quote | None]:
        await self.rate_limiter.wait_for_next_slot()
        return await capture(lambda: self.fetcher(symbol), timeout=self.timeout)

    async def fetch_quote(self, symbol: str, force_refresh: bool = False) -> Quote | None:
        """Get a quote for symbol.

        Args:
            symbol: Provider ticker symbol
            force_refresh: Skip the fresh-cache lookup; the stale copy is
                still used if the fetch fails

        Returns:
            Fresh or freshly fetched quote, a stale quote if the upstream
            failed, or None
        """
        if not symbol:
            raise ValueError("symbol must be a non-empty string")

        key = self.cache_key(symbol)
        if not force_refresh:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        outcome = await self._attempt(symbol)

        if isinstance(outcome, Failure):
            stale = self.cache.get_stale(key)
            served = "serving stale quote" if stale is not None else "no cached quote"
            if outcome.kind is FailureKind.QUOTA_EXHAUSTED:
                logger.warning(f"Quota exhausted fetching {symbol}; {served}")
            else:
                logger.warning(
                    f"Quote fetch for {symbol} failed ({outcome.kind.value}: {outcome.reason}); {served}"
                )
            return stale

        quote = outcome.value
        if quote is None:
            logger.debug(f"Symbol not found upstream: {symbol}")
            # An authoritative not-found retires any earlier quote
            self.cache.invalidate(key)
            return None

        self.cache.set(key, quote, self.ttl)
        return quote

    async def fetch_quotes(self, symbols: Sequence[str]) -> dict[str, Quote | None]:
        """Fetch several quotes concurrently, keyed in input order."""
        results = await asyncio.gather(*(self.fetch_quote(s) for s in symbols))
        return dict(zip(symbols, results))
