"""
Request Rate Limiting.

Fixed-window counter: at most `limit` requests per `window_seconds`, with the
counter reset when the window elapses.

Known behavior: a client can send `limit` requests at the end of one window
and `limit` more at the start of the next, i.e. up to 2x the limit in a short
burst across the boundary.

Usage:
    limiter = FixedWindowRateLimiter(limit=60, window_seconds=60)

    limiter.check()  # raises RateLimitExceededError when over budget
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .errors import RateLimitExceededError

logger = logging.getLogger(__name__)


@dataclass
class RateLimitStats:
    """Statistics for rate limiting."""
    total_requests: int = 0
    rejected_requests: int = 0
    windows_elapsed: int = 0


class FixedWindowRateLimiter:
    """Fixed-window request counter shared by all clients."""

    def __init__(
        self,
        limit: int = 60,
        window_seconds: float = 60.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize rate limiter.

        Args:
            limit: Requests allowed per window
            window_seconds: Window length
            clock: Monotonic time source (tests)
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock or time.monotonic
        self._window_start = self._clock()
        self._count = 0
        self._stats = RateLimitStats()

    def _roll_window(self) -> None:
        now = self._clock()
        elapsed = now - self._window_start
        if elapsed >= self.window_seconds:
            windows = int(elapsed // self.window_seconds)
            self._window_start += windows * self.window_seconds
            self._count = 0
            self._stats.windows_elapsed += windows

    @property
    def current(self) -> int:
        """Requests counted in the current window."""
        self._roll_window()
        return self._count

    def retry_after(self) -> float:
        """Seconds until the current window resets."""
        self._roll_window()
        return max(0.0, self._window_start + self.window_seconds - self._clock())

    def check(self) -> None:
        """
        Count a request against the current window.

        Raises:
            RateLimitExceededError: If the window's budget is used up
        """
        self._roll_window()
        self._count += 1
        self._stats.total_requests += 1
        if self._count > self.limit:
            self._stats.rejected_requests += 1
            raise RateLimitExceededError(self._count, self.limit, self.retry_after())

    def get_stats(self) -> Dict[str, int]:
        """Get limiter statistics."""
        return {
            "limit": self.limit,
            "current": self.current,
            "total_requests": self._stats.total_requests,
            "rejected_requests": self._stats.rejected_requests,
        }
