"""Process-wide gateway dependencies for the HTTP layer.

Tenants and their ERP clients are built once per process; the dispatcher
is a thin per-request object combining them with the current limiter.
"""

from __future__ import annotations

from erp_gateway.adapters.erp.base import AbstractERPClient
from erp_gateway.adapters.erp.httpx_client import HttpxERPClient
from erp_gateway.core.config import settings
from erp_gateway.core.rate_limit import get_rate_limiter
from erp_gateway.services.dispatcher import OperationDispatcher
from erp_gateway.services.operations import build_operation_registry
from erp_gateway.services.tenants import (
    TenantConfig,
    TenantManager,
    load_tenant_configs,
    validate_tenant_configs,
)

_operations = build_operation_registry()
_tenant_manager: TenantManager | None = None


def build_erp_client(config: TenantConfig) -> AbstractERPClient:
    """Create the ERP client for one tenant from global ERP settings."""

    return HttpxERPClient(
        config.api_key,
        settings.erp.base_url,
        api_key_header=settings.erp.api_key_header,
        timeout_seconds=settings.erp.timeout_seconds,
    )


def get_tenant_manager() -> TenantManager:
    """Return the tenant registry, loading it from the environment on first use.

    Raises:
        ConfigurationAppError: If no usable tenant is configured.
    """

    global _tenant_manager

    if _tenant_manager is None:
        configs = load_tenant_configs(legacy_api_key=settings.erp.api_key)
        validate_tenant_configs(configs)
        manager = TenantManager(build_erp_client)
        for config in configs:
            manager.register_tenant(config)
        _tenant_manager = manager

    return _tenant_manager


async def close_tenant_manager() -> None:
    global _tenant_manager

    if _tenant_manager is not None:
        await _tenant_manager.aclose()
        _tenant_manager = None


def get_dispatcher() -> OperationDispatcher:
    return OperationDispatcher(
        operations=_operations,
        tenants=get_tenant_manager(),
        limiter=get_rate_limiter(),
    )
