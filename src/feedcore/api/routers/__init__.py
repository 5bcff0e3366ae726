"""API routers module."""

from . import alerts, cache, health, market

__all__ = ["alerts", "cache", "health", "market"]
