"""Per-client sliding-window rate limiter for inbound requests.

In-process only: each worker counts its own requests.
"""

import logging
import math
import time
from collections import deque
from typing import Callable

from errors import RateLimitedError

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(
        self,
        max_requests: int,
        window_seconds: float = 3600,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque] = {}
        self._last_sweep: float | None = None

    def _cleanup(self, hits: deque, now: float) -> None:
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        """Drop clients with no requests left in the window. Runs at most once per window."""
        if self._last_sweep is not None and now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for client in list(self._hits):
            hits = self._hits[client]
            self._cleanup(hits, now)
            if not hits:
                del self._hits[client]

    @property
    def tracked_clients(self) -> int:
        return len(self._hits)

    def check(self, client: str) -> None:
        """Record a request from ``client`` or raise RateLimitedError if over the limit."""
        if not self.max_requests:
            return

        now = self._clock()
        self._sweep(now)
        hits = self._hits.setdefault(client, deque())
        self._cleanup(hits, now)

        if len(hits) >= self.max_requests:
            retry_after = math.ceil(self.window_seconds - (now - hits[0]))
            logger.warning("Rate limit reached for %s (%d requests)", client, len(hits))
            raise RateLimitedError(retry_after=max(retry_after, 1))

        hits.append(now)

    def get_stats(self, client: str) -> dict:
        """Current usage for one client."""
        hits = self._hits.get(client, deque())
        self._cleanup(hits, self._clock())
        return {
            "requests_in_window": len(hits),
            "limit": self.max_requests,
            "window_seconds": self.window_seconds,
        }
