"""Finnhub quote client.

Free tier: 60 calls/minute. A 429 response means the quota is used up.
Unknown symbols come back as an all-zero payload rather than an error.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx

from feedcore.ingestion.base import (
    MalformedPayloadError,
    QuotaExhaustedError,
    UpstreamError,
    parse_float,
)

logger = logging.getLogger(__name__)

SOURCE_NAME = "finnhub"


@dataclass(frozen=True)
class Quote:
    """Finnhub quote. None marks a field the provider could not supply."""

    symbol: str
    price: float | None
    change: float | None
    change_percent: float | None
    day_high: float | None = None
    day_low: float | None = None
    open_price: float | None = None
    previous_close: float | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def available(self) -> bool:
        return self.price is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "price": self.price,
            "change": self.change,
            "change_percent": self.change_percent,
            "day_high": self.day_high,
            "day_low": self.day_low,
            "open_price": self.open_price,
            "previous_close": self.previous_close,
            "timestamp": self.timestamp.isoformat(),
        }


def is_not_found(payload: dict[str, Any]) -> bool:
    """Finnhub answers unknown symbols with current and previous close of 0."""
    current = parse_float(payload.get("c"))
    previous_close = parse_float(payload.get("pc"))
    return not current and not previous_close


def parse_quote(symbol: str, payload: Any) -> Quote | None:
    """Convert a Finnhub /quote payload to a Quote.

    Returns:
        The quote, or None for the not-found sentinel

    Raises:
        MalformedPayloadError: payload is not a quote object
    """
    if not isinstance(payload, dict) or "c" not in payload:
        raise MalformedPayloadError(SOURCE_NAME, f"unexpected quote payload for {symbol}")

    if is_not_found(payload):
        return None

    ts = payload.get("t")
    if isinstance(ts, (int, float)) and ts > 0:
        timestamp = datetime.fromtimestamp(ts, tz=UTC)
    else:
        timestamp = datetime.now(UTC)

    return Quote(
        symbol=symbol,
        price=parse_float(payload.get("c")),
        change=parse_float(payload.get("d")),
        change_percent=parse_float(payload.get("dp")),
        day_high=parse_float(payload.get("h")),
        day_low=parse_float(payload.get("l")),
        open_price=parse_float(payload.get("o")),
        previous_close=parse_float(payload.get("pc")),
        timestamp=timestamp,
    )


class FinnhubClient:
    """Async Finnhub REST client."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://finnhub.io/api/v1",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def get_quote(self, symbol: str) -> Quote | None:
        """Fetch a single quote.

        Raises:
            QuotaExhaustedError: HTTP 429
            UpstreamError: any other non-2xx status or missing API key
            MalformedPayloadError: body is not a quote object
            httpx.TransportError: network failure or timeout
        """
        if not self.configured:
            raise UpstreamError(SOURCE_NAME, "FINNHUB_API_KEY not configured")

        logger.debug(f"Fetching Finnhub quote for {symbol}")
        resp = await self._client.get(
            f"{self.base_url}/quote",
            params={"symbol": symbol, "token": self.api_key},
        )
        if resp.status_code == 429:
            raise QuotaExhaustedError(SOURCE_NAME, f"quota exhausted fetching {symbol}")
        if resp.is_error:
            raise UpstreamError(SOURCE_NAME, f"HTTP {resp.status_code} fetching {symbol}")

        try:
            payload = resp.json()
        except ValueError as e:
            raise MalformedPayloadError(SOURCE_NAME, f"invalid JSON for {symbol}") from e

        return parse_quote(symbol, payload)

    async def aclose(self) -> None:
        await self._client.aclose()
