"""Tests for the cached API facade."""

import pytest

from feedcore.ingestion.cache import TTLCache
from feedcore.ingestion.cached_api import CachedApi, with_cache


class Counter:
    """Async fetch function counting its invocations."""

    def __init__(self, *values):
        self.values = list(values)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        value = self.values[min(self.calls, len(self.values)) - 1]
        if isinstance(value, BaseException):
            raise value
        return value


class TestWithCache:
    """Tests for with_cache()."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, clock):
        """The second call within ttl is served from cache."""
        cache = TTLCache(clock=clock)
        fetch = Counter({"total": 7.5})

        first = await with_cache(cache, "api:fedBalance", fetch, ttl=60)
        second = await with_cache(cache, "api:fedBalance", fetch, ttl=60)

        assert first == second == {"total": 7.5}
        assert fetch.calls == 1

    @pytest.mark.asyncio
    async def test_refetch_after_expiry(self, clock):
        """Once expired the fetch runs again and the new value is stored."""
        cache = TTLCache(clock=clock)
        fetch = Counter("old", "new")

        await with_cache(cache, "k", fetch, ttl=10)
        clock.advance(10)

        assert await with_cache(cache, "k", fetch, ttl=10) == "new"
        assert cache.get("k") == "new"

    @pytest.mark.asyncio
    async def test_force_refresh_overwrites(self, clock):
        """force_refresh bypasses a fresh entry and replaces it."""
        cache = TTLCache(clock=clock)
        fetch = Counter("v1", "v2")

        await with_cache(cache, "k", fetch, ttl=60)
        result = await with_cache(cache, "k", fetch, ttl=60, force_refresh=True)

        assert result == "v2"
        assert fetch.calls == 2
        assert cache.get("k") == "v2"

    @pytest.mark.asyncio
    async def test_exception_propagates_and_cache_untouched(self, clock):
        """A failing fetch raises and leaves the previous entry as it was."""
        cache = TTLCache(clock=clock)
        cache.set("k", "previous", ttl=10)
        clock.advance(20)
        fetch = Counter(RuntimeError("upstream down"))

        with pytest.raises(RuntimeError, match="upstream down"):
            await with_cache(cache, "k", fetch, ttl=10)

        assert cache.get_stale("k") == "previous"
        assert cache.get_age("k") == 20

    @pytest.mark.asyncio
    async def test_none_result_not_stored(self, clock):
        """A None result is returned but never cached."""
        cache = TTLCache(clock=clock)
        fetch = Counter(None)

        assert await with_cache(cache, "k", fetch, ttl=60) is None
        assert await with_cache(cache, "k", fetch, ttl=60) is None
        assert fetch.calls == 2
        assert "k" not in cache

    @pytest.mark.asyncio
    async def test_none_after_force_refresh_drops_prior_entry(self, clock):
        """A forced refresh returning None leaves nothing to serve later."""
        cache = TTLCache(clock=clock)
        await with_cache(cache, "api:quote", Counter("old-quote"), ttl=60)

        forced = await with_cache(cache, "api:quote", Counter(None), ttl=60, force_refresh=True)
        follow_up = await with_cache(cache, "api:quote", Counter(None), ttl=60)

        assert forced is None
        assert follow_up is None
        assert cache.get_stale("api:quote") is None

    @pytest.mark.asyncio
    async def test_parameterised_keys_are_isolated(self, clock):
        """Different parameters under different keys never collide."""
        cache = TTLCache(clock=clock)

        world = await with_cache(cache, "news:world", Counter(["w"]), ttl=300)
        tech = await with_cache(cache, "news:tech", Counter(["t"]), ttl=300)

        assert world == ["w"]
        assert tech == ["t"]
        assert cache.get("news:world") == ["w"]


class TestCachedApi:
    """Tests for CachedApi wired to stubbed providers."""

    @pytest.mark.asyncio
    async def test_indices_with_missing_quotes(self, provider, test_settings, quote_payload):
        """Unknown proxies yield rows with None prices instead of errors."""
        provider.quotes["SPY"] = quote_payload(price=500.0, prev=495.0)
        api = CachedApi.create(test_settings, transport=provider.transport)

        rows = await api.fetch_indices()

        by_symbol = {r.symbol: r for r in rows}
        assert list(by_symbol) == ["^DJI", "^GSPC", "^IXIC", "^RUT"]
        assert by_symbol["^GSPC"].price == 500.0
        assert by_symbol["^DJI"].price is None
        await api.aclose()

    @pytest.mark.asyncio
    async def test_indices_cached(self, provider, test_settings, quote_payload):
        """A second call within ttl makes no upstream requests."""
        provider.quotes["SPY"] = quote_payload()
        api = CachedApi.create(test_settings, transport=provider.transport)

        await api.fetch_indices()
        first_count = provider.count("finnhub.io")
        await api.fetch_indices()

        assert first_count == 4
        assert provider.count("finnhub.io") == 4
        assert api.get_cache_age("indices") == 0
        await api.aclose()

    @pytest.mark.asyncio
    async def test_quote_stale_fallback(self, provider, test_settings, quote_payload, clock):
        """A quota failure after expiry returns the last known quote."""
        provider.quotes["AAPL"] = quote_payload(price=190.0, prev=188.0)
        api = CachedApi.create(test_settings, transport=provider.transport, clock=clock)

        await api.fetch_quote("aapl")
        clock.advance(3600)
        provider.quote_status["AAPL"] = 429
        stale = await api.fetch_quote("AAPL")

        assert stale.price == 190.0
        assert provider.count("finnhub.io") == 2
        await api.aclose()

    @pytest.mark.asyncio
    async def test_stale_quote_keeps_its_age(self, provider, test_settings, quote_payload, clock):
        """Serving a stale quote does not re-store it as fresh."""
        provider.quotes["AAPL"] = quote_payload(price=190.0, prev=188.0)
        api = CachedApi.create(test_settings, transport=provider.transport, clock=clock)

        await api.fetch_quote("AAPL")
        clock.advance(3600)
        provider.quote_status["AAPL"] = 429
        await api.fetch_quote("AAPL")

        assert api.get_cache_age("quote:AAPL") == 3600
        assert api.cache.get_stale("api:quote:AAPL") is None

        # Still stale, so the next call tries upstream again
        await api.fetch_quote("AAPL")
        assert provider.count("finnhub.io") == 3
        await api.aclose()

    @pytest.mark.asyncio
    async def test_quote_force_refresh(self, provider, test_settings, quote_payload, clock):
        """force_refresh refetches a fresh quote and stores the new value."""
        provider.quotes["AAPL"] = quote_payload(price=190.0, prev=188.0)
        api = CachedApi.create(test_settings, transport=provider.transport, clock=clock)

        await api.fetch_quote("AAPL")
        provider.quotes["AAPL"] = quote_payload(price=195.0, prev=188.0)
        refreshed = await api.fetch_quote("AAPL", force_refresh=True)

        assert refreshed.price == 195.0
        assert (await api.fetch_quote("AAPL")).price == 195.0
        assert provider.count("finnhub.io") == 2
        await api.aclose()

    @pytest.mark.asyncio
    async def test_blank_symbol_rejected(self, provider, test_settings):
        """A symbol that strips to nothing is a caller error."""
        api = CachedApi.create(test_settings, transport=provider.transport)

        with pytest.raises(ValueError):
            await api.fetch_quote("   ")
        assert provider.count("finnhub.io") == 0
        await api.aclose()

    @pytest.mark.asyncio
    async def test_alerts_keyed_by_sorted_states(self, provider, test_settings, alert_feature):
        """State order does not change the cache key."""
        provider.alerts["TX"] = [alert_feature("a1", "Minor"), alert_feature("shared", "Severe")]
        provider.alerts["CA"] = [alert_feature("shared", "Extreme"), alert_feature("a2", "Extreme")]
        api = CachedApi.create(test_settings, transport=provider.transport)

        alerts = await api.fetch_alerts_for_states(["tx", "ca"])
        again = await api.fetch_alerts_for_states(["CA", "TX"])

        assert [a.id for a in alerts] == ["a2", "shared", "a1"]
        # The TX copy of the shared alert arrived first
        assert alerts[1].severity == "Severe"
        assert again == alerts
        assert "api:alerts:CA,TX" in api.cache
        assert provider.count("api.weather.gov") == 2
        await api.aclose()

    @pytest.mark.asyncio
    async def test_alerts_default_states(self, provider, test_settings):
        """Without states the configured defaults are used."""
        api = CachedApi.create(test_settings, transport=provider.transport)

        assert await api.fetch_alerts_for_states() == []
        assert "api:alerts:CA,TX" in api.cache
        await api.aclose()

    @pytest.mark.asyncio
    async def test_alerts_partial_failure(self, provider, test_settings, alert_feature):
        """A failing state is skipped."""
        provider.alerts["TX"] = [alert_feature("a1")]
        provider.alert_status["CA"] = 503
        api = CachedApi.create(test_settings, transport=provider.transport)

        alerts = await api.fetch_alerts_for_states(["TX", "CA"])

        assert [a.id for a in alerts] == ["a1"]
        await api.aclose()

    @pytest.mark.asyncio
    async def test_invalid_state_rejected(self, provider, test_settings):
        """Malformed state codes are a caller error."""
        api = CachedApi.create(test_settings, transport=provider.transport)

        with pytest.raises(ValueError):
            await api.fetch_alerts_for_states(["Texas"])
        await api.aclose()

    @pytest.mark.asyncio
    async def test_all_markets(self, provider, test_settings, quote_payload):
        """Every panel is populated in one call."""
        provider.quotes["XLK"] = quote_payload(price=200.0, prev=190.0)
        api = CachedApi.create(test_settings, transport=provider.transport)

        markets = await api.fetch_all_markets()

        assert len(markets.crypto) == 3
        assert len(markets.indices) == 4
        assert len(markets.sectors) == 11
        assert len(markets.commodities) == 6
        assert markets.sectors[0].price == 200.0
        assert markets.to_dict()["crypto"][0]["symbol"] == "BTC"
        await api.aclose()

    @pytest.mark.asyncio
    async def test_cache_management(self, provider, test_settings):
        """invalidate_cache, stats and clear_all_caches act on the shared store."""
        api = CachedApi.create(test_settings, transport=provider.transport)
        await api.fetch_crypto_prices()
        await api.fetch_crypto_prices()

        stats = api.get_cache_stats()
        assert stats.hit_count >= 1
        assert api.get_cache_age("crypto") == 0
        assert api.get_cache_age("missing") is None

        assert api.invalidate_cache("crypto") == 1
        assert api.get_cache_age("crypto") is None

        await api.fetch_crypto_prices()
        api.clear_all_caches()
        assert len(api.cache) == 0
        await api.aclose()

    @pytest.mark.asyncio
    async def test_aclose_clears_cache(self, provider, test_settings):
        """Shutting down drops cached data."""
        api = CachedApi.create(test_settings, transport=provider.transport)
        await api.fetch_crypto_prices()

        await api.aclose()

        assert len(api.cache) == 0

    @pytest.mark.asyncio
    async def test_unconfigured_finnhub(self, provider, test_settings):
        """Without a key quotes are unavailable but nothing raises."""
        settings = test_settings.model_copy(update={"finnhub_api_key": None})
        api = CachedApi.create(settings, transport=provider.transport)

        assert await api.fetch_quote("SPY") is None
        assert provider.count("finnhub.io") == 0
        await api.aclose()
