"""Tenant configuration, registry, and per-call tenant resolution.

Two configuration modes are supported, detected from the environment:

1. Single tenant (legacy): ``ERP_API_KEY=xxx``
2. Multi-tenant::

       TENANT_1_NAME=Acme Corp
       TENANT_1_API_KEY=xxx
       TENANT_1_ENABLED=true
       TENANT_2_NAME=Beta Inc
       TENANT_2_API_KEY=yyy

Each registered tenant gets its own ERP client, so credentials never cross
tenant boundaries.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from erp_gateway.adapters.erp.base import AbstractERPClient
from erp_gateway.core.errors import ConfigurationAppError, NotFoundAppError

logger = logging.getLogger(__name__)

DEFAULT_TENANT_ID = "default"

_TENANT_NAME_PATTERN = re.compile(r"^TENANT_(\d+)_NAME$")

ClientFactory = Callable[["TenantConfig"], AbstractERPClient]


@dataclass(frozen=True)
class TenantConfig:
    """Static description of one ERP account served by the gateway."""

    id: str
    name: str
    api_key: str = field(repr=False)
    enabled: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TenantContext:
    """Resolved tenant for a single tool call."""

    tenant_id: str
    client: AbstractERPClient
    config: TenantConfig


def load_tenant_configs(
    environ: Mapping[str, str] | None = None,
    *,
    legacy_api_key: str | None = None,
) -> list[TenantConfig]:
    """Load tenant configurations from environment variables.

    Multi-tenant variables take precedence; the legacy single key is only
    used when no ``TENANT_<n>_NAME`` variable exists.

    Args:
        environ: Environment mapping (defaults to ``os.environ``).
        legacy_api_key: Single-tenant key, usually ``settings.erp.api_key``.

    Returns:
        Tenant configurations, possibly empty.
    """
    env = os.environ if environ is None else environ

    tenant_numbers = sorted(
        {match.group(1) for key in env if (match := _TENANT_NAME_PATTERN.match(key))},
        key=int,
    )

    if tenant_numbers:
        configs: list[TenantConfig] = []
        for number in tenant_numbers:
            prefix = f"TENANT_{number}"
            name = env.get(f"{prefix}_NAME")
            api_key = env.get(f"{prefix}_API_KEY")
            if not name or not api_key:
                logger.warning(
                    "tenant.config_incomplete",
                    extra={"env_prefix": prefix, "reason": "missing name or api key"},
                )
                continue

            configs.append(
                TenantConfig(
                    id=f"tenant_{number}",
                    name=name,
                    api_key=api_key,
                    # Enabled unless explicitly disabled
                    enabled=env.get(f"{prefix}_ENABLED", "").strip().lower() != "false",
                    metadata={"source": "environment", "env_prefix": prefix},
                )
            )

        logger.info("tenant.configs_loaded", extra={"mode": "multi", "count": len(configs)})
        return configs

    if legacy_api_key:
        logger.info("tenant.configs_loaded", extra={"mode": "single", "count": 1})
        return [
            TenantConfig(
                id=DEFAULT_TENANT_ID,
                name="Default Organization",
                api_key=legacy_api_key,
                metadata={"source": "environment", "legacy": True},
            )
        ]

    return []


def validate_tenant_configs(configs: list[TenantConfig]) -> None:
    """Ensure at least one enabled tenant is configured.

    Raises:
        ConfigurationAppError: If no tenant is configured or none is enabled.
    """
    if not configs:
        raise ConfigurationAppError(
            code="tenants_not_configured",
            message="No tenant configuration found",
            details={
                "hint": (
                    "Set ERP_API_KEY for single-tenant mode, or TENANT_1_NAME and "
                    "TENANT_1_API_KEY for multi-tenant mode"
                )
            },
        )

    enabled_count = sum(1 for config in configs if config.enabled)
    if enabled_count == 0:
        raise ConfigurationAppError(
            code="no_enabled_tenants",
            message="No enabled tenants found. At least one tenant must be enabled.",
        )

    logger.info(
        "tenant.configs_valid",
        extra={"count": len(configs), "enabled": enabled_count},
    )


class TenantManager:
    """Registry of tenants and their ERP clients.

    The first registered tenant becomes the default used when a call does
    not name one.
    """

    def __init__(self, client_factory: ClientFactory) -> None:
        self._client_factory = client_factory
        self._tenants: dict[str, TenantContext] = {}
        self._default_tenant_id: str | None = None

    def register_tenant(self, config: TenantConfig) -> TenantContext:
        """Register a tenant and build its ERP client.

        Raises:
            ConfigurationAppError: If a tenant with the same id already exists.
        """
        if config.id in self._tenants:
            raise ConfigurationAppError(
                code="tenant_already_registered",
                message=f"Tenant '{config.id}' is already registered",
            )

        context = TenantContext(
            tenant_id=config.id,
            client=self._client_factory(config),
            config=config,
        )
        self._tenants[config.id] = context
        if self._default_tenant_id is None:
            self._default_tenant_id = config.id

        logger.info(
            "tenant.registered",
            extra={"tenant_id": config.id, "enabled": config.enabled},
        )
        return context

    def get_tenant(self, tenant_id: str) -> TenantContext | None:
        return self._tenants.get(tenant_id)

    def get_default_tenant(self) -> TenantContext | None:
        if self._default_tenant_id is None:
            return None
        return self._tenants.get(self._default_tenant_id)

    @property
    def default_tenant_id(self) -> str | None:
        return self._default_tenant_id

    def set_default_tenant(self, tenant_id: str) -> None:
        """Make an existing tenant the default.

        Raises:
            NotFoundAppError: If the tenant is not registered.
        """
        if tenant_id not in self._tenants:
            raise NotFoundAppError(
                code="tenant_not_found",
                message=f"Tenant '{tenant_id}' not found",
                details={"tenant_id": tenant_id},
            )
        self._default_tenant_id = tenant_id

    def list_tenants(self) -> list[str]:
        return list(self._tenants)

    def is_tenant_enabled(self, tenant_id: str) -> bool:
        context = self._tenants.get(tenant_id)
        return context is not None and context.config.enabled

    def remove_tenant(self, tenant_id: str) -> TenantContext | None:
        """Unregister a tenant; the default moves to the first remaining one.

        The caller owns closing the returned context's client.
        """
        context = self._tenants.pop(tenant_id, None)
        if self._default_tenant_id == tenant_id:
            self._default_tenant_id = next(iter(self._tenants), None)
        return context

    @property
    def tenant_count(self) -> int:
        return len(self._tenants)

    async def aclose(self) -> None:
        for context in self._tenants.values():
            await context.client.aclose()


def extract_tenant_id(arguments: Any) -> str | None:
    """Extract a tenant id from tool-call arguments if present.

    Looks for a non-empty ``tenantId`` string at the top level, then under
    ``metadata``.

    Examples:
        >>> extract_tenant_id({"tenantId": "tenant_1", "name": "x"})
        'tenant_1'
        >>> extract_tenant_id({"metadata": {"tenantId": "tenant_2"}})
        'tenant_2'
        >>> extract_tenant_id({"tenantId": ""}) is None
        True
        >>> extract_tenant_id(None) is None
        True
    """
    if not isinstance(arguments, Mapping):
        return None

    tenant_id = arguments.get("tenantId")
    if isinstance(tenant_id, str) and tenant_id:
        return tenant_id

    metadata = arguments.get("metadata")
    if isinstance(metadata, Mapping):
        tenant_id = metadata.get("tenantId")
        if isinstance(tenant_id, str) and tenant_id:
            return tenant_id

    return None
