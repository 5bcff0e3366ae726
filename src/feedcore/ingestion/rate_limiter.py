"""Minimum-spacing rate limiter for API calls."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class RateLimiter:
    """Spaces permitted requests at least min_spacing seconds apart.

    Attributes:
        min_spacing: Minimum seconds between consecutive requests
        last_request_at: Monotonic timestamp of the last permitted request
        clock: Monotonic time source
        sleep: Awaitable sleep that advances clock; replace both together
    """

    min_spacing: float
    last_request_at: float | None = field(default=None, init=False)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def __post_init__(self) -> None:
        if self.min_spacing < 0:
            raise ValueError("min_spacing must not be negative")

    @classmethod
    def from_per_minute(cls, requests_per_minute: int) -> "RateLimiter":
        """Create rate limiter from requests per minute."""
        if requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")
        return cls(min_spacing=60.0 / requests_per_minute)

    def _remaining(self) -> float:
        if self.last_request_at is None:
            return 0.0
        return self.last_request_at + self.min_spacing - self.clock()

    def _mark(self) -> None:
        now = self.clock()
        # Never move backwards, even if the clock source does
        if self.last_request_at is None or now > self.last_request_at:
            self.last_request_at = now

    async def wait_for_next_slot(self) -> float:
        """Wait until the next request is permitted, then claim the slot.

        Returns:
            Wait time in seconds (0 if no wait needed)
        """
        async with self._lock:
            waited = 0.0
            # Loop because the event loop may wake a sleeper slightly early
            while (remaining := self._remaining()) > 0:
                await self.sleep(remaining)
                waited += remaining

            self._mark()
            if waited:
                logger.debug(f"Rate limit: waited {waited:.3f}s")
            return waited

    def try_acquire(self) -> bool:
        """Claim the slot without waiting.

        Returns:
            True if the slot was free and is now taken, False otherwise
        """
        if self._lock.locked() or self._remaining() > 0:
            return False
        self._mark()
        return True

    @property
    def seconds_until_ready(self) -> float:
        """Seconds until the next request would be permitted."""
        return max(0.0, self._remaining())


class RateLimiterRegistry:
    """Registry for managing one rate limiter per provider."""

    def __init__(self) -> None:
        self._limiters: dict[str, RateLimiter] = {}

    def get(self, name: str, requests_per_minute: int = 60) -> RateLimiter:
        """Get or create a rate limiter by name."""
        if name not in self._limiters:
            self._limiters[name] = RateLimiter.from_per_minute(requests_per_minute)
        return self._limiters[name]

    def reset(self, name: str | None = None) -> None:
        """Reset one or all rate limiters."""
        if name:
            self._limiters.pop(name, None)
        else:
            self._limiters.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._limiters
