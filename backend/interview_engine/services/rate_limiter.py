from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Protocol

from interview_engine.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after_seconds: int
    limit: int
    remaining: int
    count: int
    window_reset_epoch: int
    limiter_key: str
    window_seconds: int


class RateLimiter(Protocol):
    def check(
        self,
        *,
        identifier: str,
        route_key: str,
        limit: int,
        window_seconds: int,
        now: int | None = None,
    ) -> RateLimitResult:
        ...


class NoopRateLimiter:
    """
    Disabled limiter that always allows requests. Used when rate limiting is turned off.
    """

    def check(
        self,
        *,
        identifier: str,
        route_key: str,
        limit: int,
        window_seconds: int,
        now: int | None = None,
    ) -> RateLimitResult:
        now_ts = int(now or time.time())
        return RateLimitResult(
            allowed=True,
            retry_after_seconds=0,
            limit=limit,
            remaining=max(0, limit),
            count=0,
            window_reset_epoch=now_ts + window_seconds,
            limiter_key=f"noop:{route_key}:window:{window_seconds}",
            window_seconds=window_seconds,
        )


@dataclass
class _Window:
    count: int
    reset_epoch: int


class InMemoryRateLimiter:
    """
    Fixed-window counter per (route_key, identifier), held in process memory.

    Windows whose reset time has passed are evicted on a periodic sweep, so
    the table only holds identifiers seen within the longest active window.
    """

    def __init__(self, sweep_interval_seconds: int = 60) -> None:
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._sweep_interval = max(1, sweep_interval_seconds)
        self._next_sweep = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def check(
        self,
        *,
        identifier: str,
        route_key: str,
        limit: int,
        window_seconds: int,
        now: int | None = None,
    ) -> RateLimitResult:
        now_ts = int(now if now is not None else time.time())
        window_start = now_ts - (now_ts % window_seconds)
        key = f"rl:{route_key}:{identifier}:window:{window_seconds}"

        with self._lock:
            self._maybe_sweep(now_ts)

            window = self._windows.get(key)
            if window is None or window.reset_epoch <= now_ts:
                window = _Window(count=0, reset_epoch=window_start + window_seconds)
                self._windows[key] = window

            allowed = window.count < limit
            if allowed:
                window.count += 1
            count = window.count
            reset_epoch = window.reset_epoch

        return RateLimitResult(
            allowed=allowed,
            retry_after_seconds=0 if allowed else max(1, reset_epoch - now_ts),
            limit=limit,
            remaining=max(0, limit - count),
            count=count,
            window_reset_epoch=reset_epoch,
            limiter_key=key,
            window_seconds=window_seconds,
        )

    def evict_expired(self, now: int | None = None) -> int:
        now_ts = int(now if now is not None else time.time())
        with self._lock:
            return self._evict(now_ts)

    def _maybe_sweep(self, now_ts: int) -> None:
        if now_ts < self._next_sweep:
            return
        self._evict(now_ts)
        self._next_sweep = now_ts + self._sweep_interval

    def _evict(self, now_ts: int) -> int:
        expired = [k for k, w in self._windows.items() if w.reset_epoch <= now_ts]
        for k in expired:
            del self._windows[k]
        return len(expired)


def build_rate_limiter() -> RateLimiter:
    if not settings.RATE_LIMIT_ENABLED:
        logger.info("Rate limiting disabled via RATE_LIMIT_ENABLED=false; using NoopRateLimiter")
        return NoopRateLimiter()
    logger.info("Rate limiting enabled using the in-memory limiter")
    return InMemoryRateLimiter()
