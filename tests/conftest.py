"""Pytest configuration and fixtures."""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx
import pytest

from feedcore.config.settings import Settings


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass(frozen=True)
class Record:
    """Minimal aggregated record."""

    id: str
    severity: str = "Unknown"
    source: str = ""


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_record() -> Callable[..., Record]:
    return Record


@pytest.fixture
def quote_payload() -> Callable[..., dict[str, Any]]:
    return finnhub_payload


@pytest.fixture
def alert_feature() -> Callable[..., dict[str, Any]]:
    return nws_feature


def finnhub_payload(price: float = 100.0, prev: float = 99.0, **overrides: Any) -> dict[str, Any]:
    payload = {
        "c": price,
        "d": price - prev,
        "dp": (price - prev) / prev * 100 if prev else None,
        "h": price + 1,
        "l": price - 1,
        "o": prev,
        "pc": prev,
        "t": 1_700_000_000,
    }
    payload.update(overrides)
    return payload


def nws_feature(alert_id: str, severity: str = "Moderate", event: str = "Flood Warning") -> dict:
    return {
        "id": f"https://api.weather.gov/alerts/{alert_id}",
        "properties": {
            "id": alert_id,
            "event": event,
            "severity": severity,
            "areaDesc": "Somewhere County",
            "headline": f"{event} issued",
            "certainty": "Likely",
            "urgency": "Expected",
            "affectedZones": ["https://api.weather.gov/zones/forecast/TXZ001"],
        },
    }


NOT_FOUND = {"c": 0, "d": None, "dp": None, "h": 0, "l": 0, "o": 0, "pc": 0, "t": 0}


class ProviderStub:
    """Routes httpx requests to per-host handlers and records them."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.quotes: dict[str, Any] = {}
        self.quote_status: dict[str, int] = {}
        self.coincap: Any = {
            "data": [
                {"id": "bitcoin", "priceUsd": "65000.5", "changePercent24Hr": "1.5"},
                {"id": "ethereum", "priceUsd": "3200.25", "changePercent24Hr": "-0.5"},
                {"id": "solana", "priceUsd": "150.0", "changePercent24Hr": "2.0"},
            ]
        }
        self.coincap_status = 200
        self.alerts: dict[str, list[dict]] = {}
        self.alert_status: dict[str, int] = {}

    def count(self, host: str) -> int:
        return sum(1 for r in self.requests if r.url.host == host)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host

        if host == "finnhub.io":
            symbol = request.url.params["symbol"]
            status = self.quote_status.get(symbol, 200)
            if status != 200:
                return httpx.Response(status, json={"error": "nope"})
            # Unknown symbols get the all-zero payload
            payload = self.quotes.get(symbol, NOT_FOUND)
            return httpx.Response(200, json=payload)

        if host == "api.coincap.io":
            if self.coincap_status != 200:
                return httpx.Response(self.coincap_status)
            return httpx.Response(200, content=json.dumps(self.coincap))

        if host == "api.weather.gov":
            state = request.url.path.rsplit("/", 1)[-1]
            status = self.alert_status.get(state, 200)
            if status != 200:
                return httpx.Response(status)
            return httpx.Response(200, json={"features": self.alerts.get(state, [])})

        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def provider() -> ProviderStub:
    return ProviderStub()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        finnhub_api_key="test-key",
        rate_limit_finnhub=60000,
        aggregator_batch_size=5,
        aggregator_batch_pause=0.0,
        default_alert_states=["TX", "CA"],
        debug=True,
    )
