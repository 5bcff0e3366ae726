"""CoinCap cryptocurrency price client.

CoinCap needs no API key. On failure the client serves its last good result
before falling back to rows marked unavailable.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from feedcore.config.constants import CRYPTO
from feedcore.ingestion.base import MalformedPayloadError, parse_float

logger = logging.getLogger(__name__)

SOURCE_NAME = "coincap"

# Map CRYPTO config ids to CoinCap ids
COINCAP_ID_MAP = {
    "bitcoin": "bitcoin",
    "ethereum": "ethereum",
    "solana": "solana",
}


@dataclass(frozen=True)
class CryptoItem:
    """Crypto price row. None marks an unavailable price."""

    id: str
    symbol: str
    name: str
    current_price: float | None
    price_change_percentage_24h: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "name": self.name,
            "current_price": self.current_price,
            "price_change_percentage_24h": self.price_change_percentage_24h,
        }


def unavailable_crypto() -> list[CryptoItem]:
    return [
        CryptoItem(id=cid, symbol=sym, name=name, current_price=None, price_change_percentage_24h=None)
        for cid, (sym, name) in CRYPTO.items()
    ]


def parse_assets(payload: Any) -> list[CryptoItem]:
    """Convert a CoinCap /assets payload into one row per configured coin."""
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise MalformedPayloadError(SOURCE_NAME, "missing 'data' list")

    by_id = {a.get("id"): a for a in payload["data"] if isinstance(a, dict)}
    items = []
    for cid, (sym, name) in CRYPTO.items():
        asset = by_id.get(COINCAP_ID_MAP.get(cid, cid), {})
        items.append(
            CryptoItem(
                id=cid,
                symbol=sym,
                name=name,
                current_price=parse_float(asset.get("priceUsd")),
                price_change_percentage_24h=parse_float(asset.get("changePercent24Hr")),
            )
        )
    return items


class CoinCapClient:
    """Async CoinCap REST client."""

    def __init__(
        self,
        base_url: str = "https://api.coincap.io/v2",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._last_good: tuple[float, list[CryptoItem]] | None = None

    async def get_assets(self) -> list[CryptoItem]:
        """Fetch configured coins; raises on any upstream failure."""
        ids = ",".join(COINCAP_ID_MAP.get(c, c) for c in CRYPTO)
        resp = await self._client.get(
            f"{self.base_url}/assets",
            params={"ids": ids},
            headers={"Accept": "application/json"},
        )
        resp.raise_for_status()
        try:
            payload = resp.json()
        except ValueError as e:
            raise MalformedPayloadError(SOURCE_NAME, "invalid JSON") from e
        return parse_assets(payload)

    async def fetch_crypto_prices(self) -> list[CryptoItem]:
        """Fetch prices, never raising.

        Returns:
            Fresh rows, the last good rows if the fetch failed, or rows with
            unavailable prices
        """
        try:
            items = await self.get_assets()
        except (httpx.HTTPError, MalformedPayloadError) as e:
            logger.error(f"Error fetching crypto: {e}")
            if self._last_good is not None:
                fetched_at, items = self._last_good
                logger.warning(
                    f"Using stale crypto data ({time.monotonic() - fetched_at:.0f}s old)"
                )
                return list(items)
            return unavailable_crypto()

        self._last_good = (time.monotonic(), items)
        logger.info(f"Fetched {len(items)} crypto prices")
        return items

    async def aclose(self) -> None:
        await self._client.aclose()
