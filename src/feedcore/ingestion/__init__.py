"""Data ingestion and freshness layer for feedcore."""

from .aggregator import MultiSourceAggregator, Source, severity_rank
from .base import Failure, FailureKind, FetchOutcome, Success
from .cache import CacheStats, TTLCache
from .cached_api import CachedApi, with_cache
from .quote_cache import QuoteCache
from .rate_limiter import RateLimiter, RateLimiterRegistry

__all__ = [
    "MultiSourceAggregator",
    "Source",
    "severity_rank",
    "Failure",
    "FailureKind",
    "FetchOutcome",
    "Success",
    "CacheStats",
    "TTLCache",
    "CachedApi",
    "with_cache",
    "QuoteCache",
    "RateLimiter",
    "RateLimiterRegistry",
]
