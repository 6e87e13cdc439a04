"""Operator routes for inspecting and clearing rate limit state."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from erp_gateway.core.auth import verify_api_key
from erp_gateway.core.rate_limit import get_rate_limiter
from erp_gateway.schemas.tools import RateLimitStatsResponse

router = APIRouter(
    prefix="/rate-limit",
    tags=["Rate Limit"],
    dependencies=[Depends(verify_api_key)],
)


@router.get("/stats", response_model=RateLimitStatsResponse)
def rate_limit_stats() -> RateLimitStatsResponse:
    """Raw limiter storage counters (zero when rate limiting is disabled)."""

    limiter = get_rate_limiter()
    if limiter is None:
        return RateLimitStatsResponse(total_keys=0, total_requests=0)
    stats = limiter.get_stats()
    return RateLimitStatsResponse(
        total_keys=stats.total_keys,
        total_requests=stats.total_requests,
    )


@router.delete("/{operation}", status_code=status.HTTP_204_NO_CONTENT)
def reset_rate_limit(operation: str, tenant_id: str | None = None) -> Response:
    """Clear a wrongly-tripped limit for one (tenant, operation) pair."""

    limiter = get_rate_limiter()
    if limiter is not None:
        limiter.reset(operation, tenant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
