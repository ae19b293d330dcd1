"""Sliding-window request counter keyed by client identity."""

import time
import threading
from collections import deque
from typing import Callable, Deque, Dict, Optional


class SlidingWindowRateLimiter:
    """
    Allows at most ``limit`` requests per client within ``window_seconds``.

    A limit of 0 or less disables limiting.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float = 60.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock or time.monotonic
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = self._clock()
        self._lock = threading.Lock()

    @property
    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._hits)

    def allow(self, client_id: str) -> bool:
        """Record a request and report whether it is within the limit."""
        if self.limit <= 0:
            return True

        now = self._clock()
        cutoff = now - self.window_seconds

        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._evict_idle(cutoff)
                self._last_sweep = now
            hits = self._hits.setdefault(client_id, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= self.limit:
                return False
            hits.append(now)
            return True

    def _evict_idle(self, cutoff: float) -> None:
        # a client whose newest hit left the window holds no state
        idle = [client for client, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for client in idle:
            del self._hits[client]

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
