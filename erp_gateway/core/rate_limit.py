"""Rate limiter wiring for the gateway.

This module owns the process-wide limiter instance and translates quota
rejections into HTTP headers.

Design goals:
- Minimal coupling: the dispatcher depends on the abstract limiter only.
- Swap-friendly: storage backend can be replaced (e.g., Redis) behind an
  abstract interface.
- Lifecycle-aware: the background sweep is started and stopped by the
  application lifespan.

Rate limiting strategy:
- Sliding window per (tenant, operation) pair.
- Per-operation overrides configured via APP_RATE_LIMIT_OPERATION_LIMITS.
"""

from __future__ import annotations

import logging
import math

from erp_gateway.adapters.rate_limit.base import RateLimitConfig
from erp_gateway.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from erp_gateway.core.config import build_rate_limit_config, settings
from erp_gateway.core.errors import ErrorDetails

logger = logging.getLogger(__name__)


_limiter: InMemorySlidingWindowRateLimiter | None = None
_limiter_config: tuple[RateLimitConfig, float] | None = None


def get_rate_limiter() -> InMemorySlidingWindowRateLimiter | None:
    """Return the process-wide rate limiter, or None when disabled.

    The instance is cached in-module to preserve state across requests.
    If configuration changes (primarily in tests), the limiter is rebuilt
    and the old sweeper is stopped.

    Returns:
        Configured limiter instance, or None if rate limiting is disabled.
    """

    global _limiter, _limiter_config

    if not settings.app.rate_limit_enabled:
        return None

    config = (
        build_rate_limit_config(settings.app),
        settings.app.rate_limit_cleanup_interval_seconds,
    )

    if _limiter is None or _limiter_config != config:
        if _limiter is not None:
            _limiter.stop_cleanup()
        _limiter = InMemorySlidingWindowRateLimiter(
            config[0],
            cleanup_interval_seconds=config[1],
        )
        _limiter_config = config
        logger.info(
            "rate_limit.configured",
            extra={
                "max_requests": config[0].default_max_requests,
                "window_ms": config[0].default_window_ms,
                "overrides": sorted(config[0].operation_limits),
            },
        )

    return _limiter


def rate_limit_headers(details: ErrorDetails | None) -> dict[str, str]:
    """Build Retry-After and X-RateLimit-* headers from rejection details.

    ``X-RateLimit-Reset`` is expressed in epoch seconds, rounded up.
    """

    if not details or not settings.app.rate_limit_include_headers:
        return {}

    headers: dict[str, str] = {}
    if "retry_after" in details:
        headers["Retry-After"] = str(details["retry_after"])
    if "limit" in details:
        headers["X-RateLimit-Limit"] = str(details["limit"])
    if "remaining" in details:
        headers["X-RateLimit-Remaining"] = str(details["remaining"])
    if "reset_time" in details:
        headers["X-RateLimit-Reset"] = str(math.ceil(details["reset_time"] / 1000))
    return headers
