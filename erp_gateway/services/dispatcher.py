"""Tool-call dispatcher: tenant resolution, rate limiting, and invocation.

Every call flows through the same sequence:

1. Look up the operation by name.
2. Resolve the tenant (explicit id, else ``tenantId`` in the arguments,
   else the default tenant).
3. Check the (tenant, operation) quota; a rejection surfaces as a
   ``RateLimitAppError`` carrying retry_after/reset_time, and the ERP API
   is never called.
4. Invoke the operation handler with the tenant's ERP client.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from erp_gateway.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from erp_gateway.core.errors import AuthenticationAppError, NotFoundAppError, RateLimitAppError
from erp_gateway.services.operations import Operation
from erp_gateway.services.tenants import TenantContext, TenantManager, extract_tenant_id

logger = logging.getLogger(__name__)

# Routing fields consumed by the gateway, not forwarded to handlers
_ROUTING_FIELDS = ("tenantId",)


@dataclass(frozen=True)
class DispatchResult:
    operation: str
    tenant_id: str
    result: Any
    rate_limit: RateLimitResult | None


class OperationDispatcher:
    """Routes tool calls to operation handlers under per-tenant quotas."""

    def __init__(
        self,
        *,
        operations: Mapping[str, Operation],
        tenants: TenantManager,
        limiter: AbstractRateLimiter | None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            operations: Operation registry keyed by name.
            tenants: Tenant registry providing ERP clients.
            limiter: Rate limiter, or None to disable rate limiting.
        """
        self._operations = dict(operations)
        self._tenants = tenants
        self._limiter = limiter

    @property
    def operations(self) -> list[Operation]:
        return list(self._operations.values())

    def _resolve_tenant(self, tenant_id: str | None) -> TenantContext:
        if tenant_id is None:
            context = self._tenants.get_default_tenant()
            if context is None:
                raise NotFoundAppError(
                    code="tenant_not_found",
                    message="No default tenant is registered",
                )
        else:
            context = self._tenants.get_tenant(tenant_id)
            if context is None:
                raise NotFoundAppError(
                    code="tenant_not_found",
                    message=f"Tenant '{tenant_id}' not found",
                    details={"tenant_id": tenant_id},
                )

        if not context.config.enabled:
            raise AuthenticationAppError(
                code="tenant_disabled",
                message=f"Tenant '{context.tenant_id}' is disabled",
                details={"tenant_id": context.tenant_id},
            )
        return context

    def _enforce_rate_limit(self, operation_name: str, tenant_id: str | None) -> RateLimitResult | None:
        if self._limiter is None:
            return None

        result = self._limiter.check_limit(operation_name, tenant_id)
        if result.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "operation": operation_name,
                    "tenant_id": tenant_id,
                    "limit": result.limit,
                    "remaining": result.remaining,
                },
            )
            return result

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "operation": operation_name,
                "tenant_id": tenant_id,
                "limit": result.limit,
                "retry_after_s": result.retry_after_seconds,
                "reset_time_ms": result.reset_time_ms,
            },
        )
        raise RateLimitAppError(
            code="rate_limit_exceeded",
            message=(
                f"Rate limit exceeded for '{operation_name}'. "
                f"Retry after {result.retry_after_seconds} second(s)."
            ),
            details={
                "operation": operation_name,
                "tenant_id": tenant_id,
                "limit": result.limit,
                "remaining": result.remaining,
                "retry_after": result.retry_after_seconds or 1,
                "reset_time": result.reset_time_ms,
            },
        )

    async def dispatch(
        self,
        operation_name: str,
        arguments: Mapping[str, Any] | None = None,
        *,
        tenant_id: str | None = None,
    ) -> DispatchResult:
        """Invoke an operation on behalf of a tenant.

        Args:
            operation_name: Registered operation name.
            arguments: Raw tool arguments.
            tenant_id: Explicit tenant id; overrides any ``tenantId`` argument.

        Returns:
            DispatchResult with the handler output and quota metadata.

        Raises:
            NotFoundAppError: Unknown operation or tenant.
            AuthenticationAppError: Tenant is disabled.
            RateLimitAppError: The (tenant, operation) quota is exhausted.
            ValidationAppError: Arguments failed validation.
            UpstreamAppError: The ERP API call failed.
        """
        operation = self._operations.get(operation_name)
        if operation is None:
            raise NotFoundAppError(
                code="operation_not_found",
                message=f"Unknown operation '{operation_name}'",
                details={"operation": operation_name},
            )

        raw_arguments = dict(arguments or {})
        requested_tenant = tenant_id or extract_tenant_id(raw_arguments)
        context = self._resolve_tenant(requested_tenant)

        # Calls without a tenant share the default bucket, distinct from any named tenant
        rate_limit = self._enforce_rate_limit(operation_name, requested_tenant)

        for name in _ROUTING_FIELDS:
            raw_arguments.pop(name, None)

        result = await operation.handler(context.client, raw_arguments)
        logger.info(
            "tool.dispatched",
            extra={"operation": operation_name, "tenant_id": context.tenant_id},
        )
        return DispatchResult(
            operation=operation_name,
            tenant_id=context.tenant_id,
            result=result,
            rate_limit=rate_limit,
        )
