"""Tests for tenant configuration loading, registry, and resolution."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from erp_gateway.core.errors import ConfigurationAppError, NotFoundAppError
from erp_gateway.services.tenants import (
    DEFAULT_TENANT_ID,
    TenantConfig,
    TenantManager,
    extract_tenant_id,
    load_tenant_configs,
    validate_tenant_configs,
)


def _config(tenant_id: str, *, enabled: bool = True) -> TenantConfig:
    return TenantConfig(id=tenant_id, name=tenant_id.title(), api_key=f"{tenant_id}-key", enabled=enabled)


@pytest.fixture
def manager() -> TenantManager:
    return TenantManager(lambda config: MagicMock(name=f"client-{config.id}", aclose=AsyncMock()))


class TestLoadTenantConfigs:
    def test_multi_tenant_mode(self) -> None:
        env = {
            "TENANT_1_NAME": "Acme Corp",
            "TENANT_1_API_KEY": "key-1",
            "TENANT_2_NAME": "Beta Inc",
            "TENANT_2_API_KEY": "key-2",
            "TENANT_2_ENABLED": "false",
        }

        configs = load_tenant_configs(env, legacy_api_key="ignored")

        assert [c.id for c in configs] == ["tenant_1", "tenant_2"]
        assert configs[0].name == "Acme Corp"
        assert configs[0].enabled is True
        assert configs[1].enabled is False
        assert configs[0].metadata == {"source": "environment", "env_prefix": "TENANT_1"}

    def test_tenants_ordered_numerically(self) -> None:
        env = {
            "TENANT_10_NAME": "Ten",
            "TENANT_10_API_KEY": "k10",
            "TENANT_2_NAME": "Two",
            "TENANT_2_API_KEY": "k2",
        }

        assert [c.id for c in load_tenant_configs(env)] == ["tenant_2", "tenant_10"]

    def test_incomplete_tenant_skipped(self) -> None:
        env = {
            "TENANT_1_NAME": "Acme Corp",
            "TENANT_2_NAME": "No Key Inc",
            "TENANT_1_API_KEY": "key-1",
        }

        configs = load_tenant_configs(env)

        assert [c.id for c in configs] == ["tenant_1"]

    def test_legacy_single_tenant_mode(self) -> None:
        configs = load_tenant_configs({}, legacy_api_key="legacy-key")

        assert len(configs) == 1
        assert configs[0].id == DEFAULT_TENANT_ID
        assert configs[0].name == "Default Organization"
        assert configs[0].api_key == "legacy-key"
        assert configs[0].metadata["legacy"] is True

    def test_no_configuration(self) -> None:
        assert load_tenant_configs({}) == []

    def test_api_key_not_in_repr(self) -> None:
        assert "secret-key" not in repr(TenantConfig(id="t", name="T", api_key="secret-key"))


class TestValidateTenantConfigs:
    def test_empty_configuration_rejected(self) -> None:
        with pytest.raises(ConfigurationAppError) as exc_info:
            validate_tenant_configs([])

        assert exc_info.value.code == "tenants_not_configured"

    def test_all_disabled_rejected(self) -> None:
        with pytest.raises(ConfigurationAppError) as exc_info:
            validate_tenant_configs([_config("a", enabled=False)])

        assert exc_info.value.code == "no_enabled_tenants"

    def test_valid_configuration_passes(self) -> None:
        validate_tenant_configs([_config("a", enabled=False), _config("b")])


class TestTenantManager:
    def test_first_registered_tenant_is_default(self, manager: TenantManager) -> None:
        manager.register_tenant(_config("a"))
        manager.register_tenant(_config("b"))

        assert manager.get_default_tenant().tenant_id == "a"
        assert manager.list_tenants() == ["a", "b"]
        assert manager.tenant_count == 2

    def test_each_tenant_gets_own_client(self, manager: TenantManager) -> None:
        a = manager.register_tenant(_config("a"))
        b = manager.register_tenant(_config("b"))

        assert a.client is not b.client

    def test_duplicate_registration_rejected(self, manager: TenantManager) -> None:
        manager.register_tenant(_config("a"))

        with pytest.raises(ConfigurationAppError):
            manager.register_tenant(_config("a"))

    def test_set_default_tenant(self, manager: TenantManager) -> None:
        manager.register_tenant(_config("a"))
        manager.register_tenant(_config("b"))

        manager.set_default_tenant("b")

        assert manager.get_default_tenant().tenant_id == "b"

    def test_set_unknown_default_rejected(self, manager: TenantManager) -> None:
        with pytest.raises(NotFoundAppError):
            manager.set_default_tenant("missing")

    def test_is_tenant_enabled(self, manager: TenantManager) -> None:
        manager.register_tenant(_config("a"))
        manager.register_tenant(_config("b", enabled=False))

        assert manager.is_tenant_enabled("a") is True
        assert manager.is_tenant_enabled("b") is False
        assert manager.is_tenant_enabled("missing") is False

    def test_remove_default_reassigns(self, manager: TenantManager) -> None:
        manager.register_tenant(_config("a"))
        manager.register_tenant(_config("b"))

        removed = manager.remove_tenant("a")

        assert removed is not None and removed.tenant_id == "a"
        assert manager.get_tenant("a") is None
        assert manager.get_default_tenant().tenant_id == "b"

    def test_remove_last_tenant_clears_default(self, manager: TenantManager) -> None:
        manager.register_tenant(_config("a"))

        manager.remove_tenant("a")

        assert manager.get_default_tenant() is None
        assert manager.default_tenant_id is None

    @pytest.mark.asyncio
    async def test_aclose_closes_every_client(self, manager: TenantManager) -> None:
        a = manager.register_tenant(_config("a"))
        b = manager.register_tenant(_config("b"))

        await manager.aclose()

        a.client.aclose.assert_awaited_once()
        b.client.aclose.assert_awaited_once()


class TestExtractTenantId:
    @pytest.mark.parametrize(
        "arguments, expected",
        [
            ({"tenantId": "tenant_1"}, "tenant_1"),
            ({"metadata": {"tenantId": "tenant_2"}}, "tenant_2"),
            ({"tenantId": "top", "metadata": {"tenantId": "nested"}}, "top"),
            ({"tenantId": "", "metadata": {"tenantId": "nested"}}, "nested"),
            ({"tenantId": 42}, None),
            ({"metadata": "not-a-dict"}, None),
            ({}, None),
            (None, None),
            ("tenant_1", None),
        ],
    )
    def test_extract(self, arguments, expected) -> None:
        assert extract_tenant_id(arguments) == expected
