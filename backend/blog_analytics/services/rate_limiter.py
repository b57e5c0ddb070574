"""
Fixed-window request counters keyed by client address.

Accounting policy: every attempt increments its window counter, including
attempts that end up rejected, so retrying inside a window never frees a slot.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from blog_analytics.core.errors import RateLimitedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single hit against a limiter."""

    allowed: bool
    limit: int
    remaining: int
    reset_after: int  # seconds until the current window ends

    def headers(self) -> Dict[str, str]:
        return {
            "Retry-After": str(self.reset_after),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_after),
        }


class FixedWindowRateLimiter:
    """Allow at most ``limit`` hits per key in each ``window_seconds`` window."""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        message: str,
        name: str = "api",
        max_keys: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = int(max(1, limit))
        self.window_seconds = float(max(1, window_seconds))
        self.message = message
        self.name = name
        self.max_keys = max_keys
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (window start, hits in window)
        self._windows: Dict[str, Tuple[float, int]] = {}

    def hit(self, key: str) -> RateLimitDecision:
        """Count one attempt for ``key`` and report whether it is allowed."""
        with self._lock:
            now = self._clock()
            start, count = self._windows.get(key, (now, 0))
            if now - start >= self.window_seconds:
                start, count = now, 0
            count += 1
            self._windows[key] = (start, count)
            if len(self._windows) > self.max_keys:
                self._prune(now)

        reset_after = max(1, math.ceil(start + self.window_seconds - now))
        return RateLimitDecision(
            allowed=count <= self.limit,
            limit=self.limit,
            remaining=max(self.limit - count, 0),
            reset_after=reset_after,
        )

    def check(self, key: str) -> RateLimitDecision:
        """Like ``hit`` but raise ``RateLimitedError`` when the limit is exceeded."""
        decision = self.hit(key)
        if not decision.allowed:
            logger.warning(f"[RATE] {self.name} limit exceeded for {key}")
            raise RateLimitedError(
                self.message,
                extra={"retryAfter": decision.reset_after},
                headers=decision.headers(),
            )
        return decision

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _prune(self, now: float) -> None:
        # Caller holds the lock
        expired = [
            k for k, (start, _) in self._windows.items() if now - start >= self.window_seconds
        ]
        for k in expired:
            del self._windows[k]
