"""Market rows for the dashboard, built on the Finnhub quote cache."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from feedcore.config.constants import (
    COMMODITIES,
    COMMODITY_SYMBOL_MAP,
    INDEX_ETF_MAP,
    INDICES,
    SECTORS,
    MarketItemType,
)
from feedcore.ingestion.quote_cache import QuoteCache
from feedcore.ingestion.sources.coincap import CoinCapClient, CryptoItem
from feedcore.ingestion.sources.finnhub import Quote

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketItem:
    """Index or commodity row. None prices mean the data is unavailable."""

    symbol: str
    name: str
    price: float | None
    change: float | None
    change_percent: float | None
    type: MarketItemType

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "price": self.price,
            "change": self.change,
            "change_percent": self.change_percent,
            "type": self.type.value,
        }


@dataclass(frozen=True)
class SectorPerformance:
    """Sector ETF row."""

    symbol: str
    name: str
    price: float | None
    change: float | None
    change_percent: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "price": self.price,
            "change": self.change,
            "change_percent": self.change_percent,
        }


@dataclass(frozen=True)
class AllMarkets:
    """Every market panel in one payload."""

    crypto: list[CryptoItem]
    indices: list[MarketItem]
    sectors: list[SectorPerformance]
    commodities: list[MarketItem]

    def to_dict(self) -> dict[str, Any]:
        return {
            "crypto": [c.to_dict() for c in self.crypto],
            "indices": [i.to_dict() for i in self.indices],
            "sectors": [s.to_dict() for s in self.sectors],
            "commodities": [c.to_dict() for c in self.commodities],
        }


def _market_item(symbol: str, name: str, quote: Quote | None, item_type: MarketItemType) -> MarketItem:
    return MarketItem(
        symbol=symbol,
        name=name,
        price=quote.price if quote else None,
        change=quote.change if quote else None,
        change_percent=quote.change_percent if quote else None,
        type=item_type,
    )


class MarketService:
    """Builds market rows; never raises for upstream trouble."""

    def __init__(self, quote_cache: QuoteCache, crypto_client: CoinCapClient) -> None:
        self.quote_cache = quote_cache
        self.crypto_client = crypto_client

    async def fetch_crypto_prices(self) -> list[CryptoItem]:
        return await self.crypto_client.fetch_crypto_prices()

    async def fetch_indices(self) -> list[MarketItem]:
        """Fetch market indices via their ETF proxies."""
        logger.debug("Fetching indices from Finnhub")
        proxies = {sym: INDEX_ETF_MAP.get(sym, sym) for sym in INDICES}
        quotes = await self.quote_cache.fetch_quotes(list(proxies.values()))
        return [
            _market_item(sym, name, quotes.get(proxies[sym]), MarketItemType.INDEX)
            for sym, name in INDICES.items()
        ]

    async def fetch_sector_performance(self) -> list[SectorPerformance]:
        """Fetch sector ETF performance."""
        logger.debug("Fetching sector performance from Finnhub")
        quotes = await self.quote_cache.fetch_quotes(list(SECTORS))
        rows = []
        for sym, name in SECTORS.items():
            quote = quotes.get(sym)
            rows.append(
                SectorPerformance(
                    symbol=sym,
                    name=name,
                    price=quote.price if quote else None,
                    change=quote.change if quote else None,
                    change_percent=quote.change_percent if quote else None,
                )
            )
        return rows

    async def fetch_commodities(self) -> list[MarketItem]:
        """Fetch commodities via their ETF proxies."""
        logger.debug("Fetching commodities from Finnhub")
        proxies = {sym: COMMODITY_SYMBOL_MAP.get(sym, sym) for sym in COMMODITIES}
        quotes = await self.quote_cache.fetch_quotes(list(proxies.values()))
        return [
            _market_item(sym, name, quotes.get(proxies[sym]), MarketItemType.COMMODITY)
            for sym, name in COMMODITIES.items()
        ]

    async def fetch_all_markets(self) -> AllMarkets:
        """Fetch all market panels concurrently."""
        crypto, indices, sectors, commodities = await asyncio.gather(
            self.fetch_crypto_prices(),
            self.fetch_indices(),
            self.fetch_sector_performance(),
            self.fetch_commodities(),
        )
        return AllMarkets(crypto=crypto, indices=indices, sectors=sectors, commodities=commodities)
