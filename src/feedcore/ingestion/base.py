"""Base types for data ingestion: fetch outcomes and upstream errors."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

import httpx

T = TypeVar("T")


class FeedError(Exception):
    """Base class for feed errors."""


class UpstreamError(FeedError):
    """An upstream provider failed to deliver usable data."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(f"{source}: {message}")


class QuotaExhaustedError(UpstreamError):
    """The provider rejected the request because the quota is used up."""


class MalformedPayloadError(UpstreamError):
    """The provider answered with a payload of unexpected shape."""


class FailureKind(str, Enum):
    """Why a fetch did not produce data."""

    TIMEOUT = "timeout"
    QUOTA_EXHAUSTED = "quota_exhausted"
    HTTP_ERROR = "http_error"
    NETWORK = "network"
    MALFORMED = "malformed"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class Success(Generic[T]):
    """A fetch that produced a value."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """A fetch that failed; never raised past the collecting layer."""

    kind: FailureKind
    reason: str

    @property
    def ok(self) -> bool:
        return False


FetchOutcome = Success[T] | Failure


def classify(exc: BaseException) -> FailureKind:
    """Map an exception raised by a fetcher to a failure kind."""
    if isinstance(exc, QuotaExhaustedError):
        return FailureKind.QUOTA_EXHAUSTED
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError, httpx.TimeoutException)):
        return FailureKind.TIMEOUT
    if isinstance(exc, httpx.HTTPStatusError):
        if exc.response.status_code == 429:
            return FailureKind.QUOTA_EXHAUSTED
        return FailureKind.HTTP_ERROR
    if isinstance(exc, httpx.TransportError):
        return FailureKind.NETWORK
    if isinstance(exc, (MalformedPayloadError, ValueError, KeyError, TypeError)):
        return FailureKind.MALFORMED
    if isinstance(exc, UpstreamError):
        return FailureKind.HTTP_ERROR
    return FailureKind.UNEXPECTED


async def capture(
    fetch_func: Callable[[], Awaitable[T]],
    timeout: float | None = None,
) -> FetchOutcome[T]:
    """Run a fetch and capture its result as a FetchOutcome.

    Args:
        fetch_func: Zero-argument async callable producing the data
        timeout: Optional bound in seconds; expiry is a TIMEOUT failure

    Returns:
        Success with the value, or Failure describing what went wrong
    """
    try:
        async with asyncio.timeout(timeout):
            value = await fetch_func()
    except Exception as e:
        kind = classify(e)
        return Failure(kind=kind, reason=str(e) or type(e).__name__)
    return Success(value)


def parse_float(val: Any) -> float | None:
    """Safely parse a value to float."""
    if val is None or val == "" or val == "null":
        return None
    try:
        return float(val)
    except (ValueError, TypeError):
        return None
