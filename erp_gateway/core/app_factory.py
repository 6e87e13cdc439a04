"""Application factory for the gateway.

Centralizes app construction (metadata, middleware, handlers, routers,
lifespan) so tests and the ASGI entrypoint build identical apps.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from erp_gateway.api.deps import close_tenant_manager, get_tenant_manager
from erp_gateway.api.routes import health_router, rate_limit_router, tools_router
from erp_gateway.core.config import settings
from erp_gateway.core.exception_handlers import setup_exception_handlers
from erp_gateway.core.logging import configure_logging
from erp_gateway.core.middleware import request_id_middleware
from erp_gateway.core.openapi import apply_openapi_customizations
from erp_gateway.core.rate_limit import get_rate_limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the rate limit sweeper for the lifetime of the app."""

    limiter = get_rate_limiter()
    if limiter is not None:
        limiter.start_cleanup()
    try:
        yield
    finally:
        if limiter is not None:
            limiter.stop_cleanup()
        await close_tenant_manager()
        logger.info("gateway.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Tenant configuration is loaded eagerly so a misconfigured deployment
    fails at startup rather than on the first tool call.

    Raises:
        ConfigurationAppError: If no usable tenant is configured.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    tenants = get_tenant_manager()
    logger.info(
        "gateway.tenants_ready",
        extra={"tenants": tenants.list_tenants(), "default_tenant": tenants.default_tenant_id},
    )

    app = FastAPI(
        title="ERP Tool Gateway",
        description=(
            "Exposes ERP API resources (contacts, warehouses, ...) as uniformly-shaped "
            "tool calls with per-tenant, per-operation sliding-window rate limiting."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(tools_router, prefix="/v1")
    app.include_router(rate_limit_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
