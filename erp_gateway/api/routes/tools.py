"""Tool-call routes: list operations and invoke one on behalf of a tenant."""

from __future__ import annotations

import math
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Response

from erp_gateway.api.deps import get_dispatcher
from erp_gateway.core.auth import verify_api_key
from erp_gateway.core.config import settings
from erp_gateway.schemas.tools import OperationInfo, ToolCallRequest, ToolCallResponse
from erp_gateway.services.dispatcher import OperationDispatcher

router = APIRouter(tags=["Tools"], dependencies=[Depends(verify_api_key)])


@router.get("/tools", response_model=list[OperationInfo])
async def list_tools(
    dispatcher: Annotated[OperationDispatcher, Depends(get_dispatcher)],
) -> list[OperationInfo]:
    return [
        OperationInfo(name=op.name, description=op.description, read_only=op.read_only)
        for op in dispatcher.operations
    ]


@router.post("/tools/{operation}", response_model=ToolCallResponse)
async def call_tool(
    operation: str,
    response: Response,
    dispatcher: Annotated[OperationDispatcher, Depends(get_dispatcher)],
    payload: ToolCallRequest | None = None,
    x_tenant_id: Annotated[str | None, Header(alias="X-Tenant-ID")] = None,
) -> ToolCallResponse:
    """Invoke an ERP operation.

    The tenant comes from the X-Tenant-ID header, else from a ``tenantId``
    argument, else the default tenant. Quota rejections are rendered as 429
    with Retry-After by the global exception handlers.
    """
    arguments = payload.arguments if payload else {}
    outcome = await dispatcher.dispatch(operation, arguments, tenant_id=x_tenant_id or None)

    rate_limit = outcome.rate_limit
    if rate_limit is not None and settings.app.rate_limit_include_headers:
        response.headers["X-RateLimit-Limit"] = str(rate_limit.limit)
        response.headers["X-RateLimit-Remaining"] = str(rate_limit.remaining)
        response.headers["X-RateLimit-Reset"] = str(math.ceil(rate_limit.reset_time_ms / 1000))

    return ToolCallResponse(
        operation=outcome.operation,
        tenant_id=outcome.tenant_id,
        result=outcome.result,
        remaining=rate_limit.remaining if rate_limit else None,
        reset_time=rate_limit.reset_time_ms if rate_limit else None,
    )
