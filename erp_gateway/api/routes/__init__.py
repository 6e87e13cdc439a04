from __future__ import annotations

from erp_gateway.api.routes.health import router as health_router
from erp_gateway.api.routes.rate_limit import router as rate_limit_router
from erp_gateway.api.routes.tools import router as tools_router

__all__ = ["health_router", "rate_limit_router", "tools_router"]
