"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: one lock guards the request logs; the filter-count-decide-append
  sequence of ``check_limit`` runs entirely under it.
- A background sweeper thread drops cold keys so memory stays bounded.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import deque
from typing import Callable

from erp_gateway.adapters.rate_limit.base import (
    AbstractRateLimiter,
    OperationLimit,
    RateLimitConfig,
    RateLimitResult,
    RateLimitStats,
)

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_INTERVAL_SECONDS = 60.0

# (tenant_id, operation_name); tenant_id None is the default bucket
TrackingKey = tuple[str | None, str]


def _epoch_ms() -> int:
    return time.time_ns() // 1_000_000


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter admitting at most N calls in any trailing window of W ms.

    Each (tenant, operation) pair owns an independent log of admitted-call
    timestamps. On every check the log is pruned of entries that fell out of
    the window, so the window boundary moves continuously with the clock
    rather than in discrete buckets.

    Important:
        This limiter is per-process only. If the gateway runs with multiple
        workers, each worker enforces its own independent limits.
    """

    def __init__(
        self,
        config: RateLimitConfig,
        *,
        clock: Callable[[], int] = _epoch_ms,
        cleanup_interval_seconds: float = DEFAULT_CLEANUP_INTERVAL_SECONDS,
    ) -> None:
        """Initialize the limiter.

        The background sweep is not started here; call ``start_cleanup()``
        (the application lifespan does) and ``stop_cleanup()`` on shutdown.

        Args:
            config: Default quota and per-operation overrides.
            clock: Time source returning epoch milliseconds.
            cleanup_interval_seconds: Period of the background sweep.

        Raises:
            ValueError: If cleanup_interval_seconds is not positive.
        """
        if cleanup_interval_seconds <= 0:
            raise ValueError("cleanup_interval_seconds must be > 0")

        self._config = config
        self._clock = clock
        self._cleanup_interval = cleanup_interval_seconds
        self._lock = threading.RLock()
        self._logs: dict[TrackingKey, deque[int]] = {}
        self._stop_event = threading.Event()
        self._sweeper: threading.Thread | None = None

    @property
    def config(self) -> RateLimitConfig:
        return self._config

    @staticmethod
    def _make_key(operation_name: str, tenant_id: str | None) -> TrackingKey:
        return (tenant_id or None, operation_name)

    @staticmethod
    def _prune(log: deque[int], cutoff: int) -> None:
        # Timestamps are appended with "now", so the oldest entries sit at the left
        while log and log[0] <= cutoff:
            log.popleft()

    def _build_blocked_result(self, *, limit: OperationLimit, oldest: int, now: int) -> RateLimitResult:
        reset_time = oldest + limit.window_ms
        retry_after = math.ceil((reset_time - now) / 1000)
        return RateLimitResult(
            allowed=False,
            limit=limit.max_requests,
            remaining=0,
            reset_time_ms=reset_time,
            retry_after_seconds=max(1, retry_after),
        )

    def check_limit(self, operation_name: str, tenant_id: str | None = None) -> RateLimitResult:
        """Admit or reject a call for ``(tenant_id, operation_name)``.

        Admitted calls are recorded; rejected calls are not, although
        expired entries are still pruned from the key's log.

        Args:
            operation_name: Operation being invoked.
            tenant_id: Optional tenant; None and "" share the default bucket.

        Returns:
            RateLimitResult with the admission decision and quota metadata.
        """
        limit = self._config.limit_for(operation_name)
        key = self._make_key(operation_name, tenant_id)

        with self._lock:
            now = self._clock()
            log = self._logs.get(key)
            if log is None:
                log = deque()
            self._prune(log, now - limit.window_ms)
            occupancy = len(log)

            if occupancy >= limit.max_requests:
                self._logs[key] = log
                return self._build_blocked_result(limit=limit, oldest=log[0], now=now)

            reset_time = log[0] + limit.window_ms if log else now + limit.window_ms
            log.append(now)
            self._logs[key] = log

        return RateLimitResult(
            allowed=True,
            limit=limit.max_requests,
            remaining=limit.max_requests - occupancy - 1,
            reset_time_ms=reset_time,
        )

    def reset(self, operation_name: str, tenant_id: str | None = None) -> None:
        key = self._make_key(operation_name, tenant_id)
        with self._lock:
            self._logs.pop(key, None)
        logger.info(
            "rate_limit.reset",
            extra={"operation": operation_name, "tenant_id": tenant_id or None},
        )

    def get_stats(self) -> RateLimitStats:
        with self._lock:
            return RateLimitStats(
                total_keys=len(self._logs),
                total_requests=sum(len(log) for log in self._logs.values()),
            )

    def cleanup(self) -> int:
        """Drop entries older than the longest configured window.

        The cutoff is global rather than per key, so keys governed by a
        shorter override window may keep stale entries until a later sweep;
        ``check_limit`` always re-filters with the key's own window.

        Returns:
            Number of keys removed because their log became empty.
        """
        max_window = self._config.max_window_ms
        with self._lock:
            keys = list(self._logs)

        evicted = 0
        for key in keys:
            with self._lock:
                log = self._logs.get(key)
                if log is None:
                    continue
                self._prune(log, self._clock() - max_window)
                if not log:
                    del self._logs[key]
                    evicted += 1

        if evicted:
            logger.debug(
                "rate_limit.cleanup",
                extra={"evicted_keys": evicted, "max_window_ms": max_window},
            )
        return evicted

    def _run_sweeper(self) -> None:
        while not self._stop_event.wait(self._cleanup_interval):
            self.cleanup()

    def start_cleanup(self) -> None:
        """Start the periodic sweep on a daemon thread (no-op if running)."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._run_sweeper,
            name="rate-limit-sweeper",
            daemon=True,
        )
        self._sweeper.start()
        logger.info(
            "rate_limit.sweeper_started",
            extra={"interval_s": self._cleanup_interval},
        )

    def stop_cleanup(self, timeout: float | None = 5.0) -> None:
        """Stop the periodic sweep and wait for the thread to exit."""
        self._stop_event.set()
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None:
            sweeper.join(timeout)
            logger.info("rate_limit.sweeper_stopped")

    @property
    def cleanup_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()
