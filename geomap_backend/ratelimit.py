import threading
import time
from collections import deque
from typing import Deque, Dict

from geomap_backend import exc


# PUBLIC_INTERFACE
class SlidingWindowRateLimiter:
    """
    Allows at most ``limit`` hits per key inside a rolling ``window`` seconds.

    Keys whose hits have all left the window are forgotten.
    """

    def __init__(self, limit: int, window: float, clock=time.monotonic):
        self.limit = limit
        self.window = window
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        cutoff = now - self.window
        for key in list(self._hits):
            hits = self._hits[key]
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if not hits:
                del self._hits[key]

    def hit(self, key: str) -> None:
        """Record one hit for ``key``; raises RateLimited once over the limit."""
        now = self._clock()
        with self._lock:
            self._prune(now)
            hits = self._hits.get(key)
            if hits is not None and len(hits) >= self.limit:
                raise exc.RateLimited()
            self._hits.setdefault(key, deque()).append(now)

    def remaining(self, key: str) -> int:
        now = self._clock()
        with self._lock:
            self._prune(now)
            return max(0, self.limit - len(self._hits.get(key, ())))

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)
