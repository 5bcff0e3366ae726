"""Upstream provider clients - Finnhub, CoinCap, NWS."""

from .coincap import CoinCapClient, CryptoItem
from .finnhub import FinnhubClient, Quote
from .nws import NWSClient, WeatherAlert

__all__ = [
    "CoinCapClient",
    "CryptoItem",
    "FinnhubClient",
    "Quote",
    "NWSClient",
    "WeatherAlert",
]
