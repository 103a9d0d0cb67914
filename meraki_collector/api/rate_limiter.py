"""
Shared rate limiter for Dashboard API requests.

The Dashboard API enforces a request budget per organization and
signals overruns with HTTP 429. The limiter spaces requests per key
and lets a 429 put the whole key into a cool-down, so concurrent
requests for the same organization back off together.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict

logger = logging.getLogger(__name__)

GLOBAL_KEY = "__global__"


@dataclass
class _KeyState:
    """Scheduling state for a single rate-limit key."""
    next_slot: float = 0.0
    blocked_until: float = 0.0


class RateLimiter:
    """
    Per-key request spacing with 429 cool-downs.

    Safe to share between concurrent tasks: state is mutated under an
    asyncio lock and waiting happens outside of it.
    """

    def __init__(
        self,
        requests_per_second: float = 10.0,
        shared: bool = False,
    ):
        """
        Initialize the rate limiter.

        Args:
            requests_per_second: Budget per key. 0 disables spacing.
            shared: Use one key for every organization.
        """
        self.requests_per_second = requests_per_second
        self.shared = shared

        self._interval = 1.0 / requests_per_second if requests_per_second > 0 else 0.0
        self._states: Dict[str, _KeyState] = {}
        self._lock = asyncio.Lock()

        # Statistics
        self._waits = 0
        self._penalties = 0

    def _resolve_key(self, key: str) -> str:
        return GLOBAL_KEY if self.shared else key

    async def acquire(self, key: str) -> float:
        """
        Wait until a request for the key may be sent.

        Args:
            key: Rate-limit key (organization ID).

        Returns:
            Seconds waited.
        """
        key = self._resolve_key(key)

        async with self._lock:
            state = self._states.setdefault(key, _KeyState())
            now = time.monotonic()
            start = max(now, state.next_slot, state.blocked_until)
            state.next_slot = start + self._interval
            delay = start - now

        if delay > 0:
            self._waits += 1
            logger.debug(f"Rate limiter delaying request for {key} by {delay:.3f}s")
            await asyncio.sleep(delay)

        return delay

    async def penalize(self, key: str, delay: float) -> None:
        """
        Block a key for a period after the server signalled a rate limit.

        Args:
            key: Rate-limit key (organization ID).
            delay: Seconds to block the key for.
        """
        key = self._resolve_key(key)

        async with self._lock:
            state = self._states.setdefault(key, _KeyState())
            state.blocked_until = max(state.blocked_until, time.monotonic() + delay)

        self._penalties += 1
        logger.debug(f"Rate limiter cooling down {key} for {delay:.3f}s")

    def get_stats(self) -> Dict[str, Any]:
        """
        Get limiter statistics.

        Returns:
            Dictionary of limiter stats.
        """
        return {
            "requests_per_second": self.requests_per_second,
            "shared": self.shared,
            "keys": len(self._states),
            "waits": self._waits,
            "penalties": self._penalties,
        }
