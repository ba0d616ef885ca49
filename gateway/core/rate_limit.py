"""
Fixed-window rate limiting per caller.

For caller ``c`` with window ``W`` and limit ``L``: when ``now`` passes the
window's reset time the counter restarts at zero and the window is pushed to
``now + W``; every request increments the counter and is allowed while
``count <= L``.

Capacity caveats:

* Fixed windows let a caller spend up to ``2L`` requests across a window
  boundary. That is fine for abuse deterrence but not for strict quotas,
  which need a token bucket or sliding log instead.
* ``InMemoryWindowStore`` is per process. With several warm instances the
  effective limit is ``L`` times the number of instances. Use
  ``RedisWindowStore`` when instances must share counters.
"""
import abc
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import redis

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class RateWindow:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float

    def retry_after(self, now: float) -> int:
        """Whole seconds until the window resets, at least 1."""
        return max(1, math.ceil(self.reset_at - now))


class WindowStore(abc.ABC):
    """Holds one counting window per caller."""

    @abc.abstractmethod
    def hit(self, caller_id: str, window_seconds: float, now: float) -> RateWindow:
        """Count one request against the caller's current window."""


class InMemoryWindowStore(WindowStore):
    def __init__(self):
        self._windows: Dict[str, RateWindow] = {}
        self._lock = threading.Lock()

    def hit(self, caller_id: str, window_seconds: float, now: float) -> RateWindow:
        with self._lock:
            record = self._windows.get(caller_id)
            if record is None:
                record = RateWindow(count=0, reset_at=now + window_seconds)
                self._windows[caller_id] = record
            if now > record.reset_at:
                record.count = 0
                record.reset_at = now + window_seconds
            record.count += 1
            return RateWindow(count=record.count, reset_at=record.reset_at)


class RedisWindowStore(WindowStore):
    """Shared windows in Redis; the key's TTL is the window."""

    def __init__(self, client: redis.Redis, prefix: str = "rate_limit"):
        self.redis = client
        self.prefix = prefix

    def _key(self, caller_id: str) -> str:
        return f"{self.prefix}:{caller_id}"

    def hit(self, caller_id: str, window_seconds: float, now: float) -> RateWindow:
        key = self._key(caller_id)
        window_ms = int(window_seconds * 1000)
        pipe = self.redis.pipeline()
        pipe.set(key, 0, px=window_ms, nx=True)
        pipe.incr(key)
        pipe.pttl(key)
        _, count, ttl_ms = pipe.execute()
        if ttl_ms is None or ttl_ms < 0:
            self.redis.pexpire(key, window_ms)
            ttl_ms = window_ms
        return RateWindow(count=int(count), reset_at=now + ttl_ms / 1000.0)


class RateLimiter:
    def __init__(
        self,
        store: WindowStore,
        window_seconds: float = 60,
        default_limit: int = 100,
        clock: Clock = time.time,
    ):
        self.store = store
        self.window_seconds = window_seconds
        self.default_limit = default_limit
        self.clock = clock

    def check(self, caller_id: str, limit: Optional[int] = None) -> RateLimitResult:
        limit = limit or self.default_limit
        window = self.store.hit(caller_id, self.window_seconds, self.clock())
        allowed = window.count <= limit
        if not allowed:
            logger.warning("Rate limit exceeded for caller %s (%d/%d)", caller_id, window.count, limit)
        return RateLimitResult(
            allowed=allowed,
            limit=limit,
            remaining=max(0, limit - window.count),
            reset_at=window.reset_at,
        )
