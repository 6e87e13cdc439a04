"""Rate limiter interfaces and value types.

The dispatcher depends on this abstraction (not the concrete implementation)
so the storage backend can be swapped later (e.g., Redis) without touching
the tool-call path.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class OperationLimit:
    """Quota for a single operation: at most ``max_requests`` per ``window_ms``."""

    max_requests: int
    window_ms: int

    @property
    def is_valid(self) -> bool:
        return self.max_requests > 0 and self.window_ms > 0


@dataclass(frozen=True)
class RateLimitConfig:
    """Process-wide limiter configuration, immutable after construction.

    Attributes:
        default_max_requests: Quota applied when an operation has no override.
        default_window_ms: Trailing window length in milliseconds.
        operation_limits: Per-operation overrides keyed by operation name.

    Raises:
        ValueError: If the default quota or window is not positive.
    """

    default_max_requests: int
    default_window_ms: int
    operation_limits: Mapping[str, OperationLimit] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.default_max_requests < 1:
            raise ValueError("default_max_requests must be >= 1")
        if self.default_window_ms < 1:
            raise ValueError("default_window_ms must be >= 1")
        # Freeze a private copy so later mutation of the caller's dict is not observed
        object.__setattr__(
            self, "operation_limits", MappingProxyType(dict(self.operation_limits))
        )

    @property
    def default_limit(self) -> OperationLimit:
        return OperationLimit(
            max_requests=self.default_max_requests,
            window_ms=self.default_window_ms,
        )

    def limit_for(self, operation_name: str) -> OperationLimit:
        """Resolve the effective quota for an operation.

        Malformed overrides (non-positive values) are ignored.
        """
        override = self.operation_limits.get(operation_name)
        if override is not None and override.is_valid:
            return override
        return self.default_limit

    @property
    def max_window_ms(self) -> int:
        """Longest window across the default and every valid override."""
        windows = [limit.window_ms for limit in self.operation_limits.values() if limit.is_valid]
        return max([self.default_window_ms, *windows])


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a ``check_limit`` call.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Resolved max requests for the operation.
        remaining: Slots left in the trailing window after this call (0 when blocked).
        reset_time_ms: Epoch milliseconds at which the oldest tracked event leaves the window.
        retry_after_seconds: Whole seconds to wait (>= 1) when blocked, otherwise None.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_time_ms: int
    retry_after_seconds: int | None = None


@dataclass(frozen=True)
class RateLimitStats:
    """Raw storage counters, stale-but-unswept entries included."""

    total_keys: int
    total_requests: int


class AbstractRateLimiter(ABC):
    """Interface for per-(tenant, operation) rate limiters."""

    @abstractmethod
    def check_limit(self, operation_name: str, tenant_id: str | None = None) -> RateLimitResult:
        """Check the quota for an operation and record the call when admitted.

        Args:
            operation_name: Operation being invoked (opaque string).
            tenant_id: Optional tenant identifier; None or "" use the default bucket.

        Returns:
            RateLimitResult describing whether the call was admitted.
        """
        raise NotImplementedError

    @abstractmethod
    def reset(self, operation_name: str, tenant_id: str | None = None) -> None:
        """Forget every tracked call for the given key."""
        raise NotImplementedError

    @abstractmethod
    def get_stats(self) -> RateLimitStats:
        """Return a point-in-time snapshot of tracked keys and timestamps."""
        raise NotImplementedError
