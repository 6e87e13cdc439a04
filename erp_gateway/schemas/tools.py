"""Pydantic schemas for tool-call requests, responses, and operation arguments."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ToolCallRequest(BaseModel):
    """Body of ``POST /v1/tools/{operation}``."""

    arguments: dict[str, Any] = Field(
        default_factory=dict,
        description=(
            "Operation arguments. A 'tenantId' (top level or under 'metadata') "
            "selects the tenant when no X-Tenant-ID header is sent."
        ),
    )


class ToolCallResponse(BaseModel):
    """Result of a successful tool call."""

    operation: str = Field(..., description="Invoked operation name.")
    tenant_id: str = Field(..., description="Tenant whose ERP account served the call.")
    result: Any = Field(None, description="Decoded ERP API response.")
    remaining: int | None = Field(
        None, description="Calls left in the current rate limit window (None when disabled)."
    )
    reset_time: int | None = Field(
        None, description="Epoch ms at which the oldest tracked call leaves the window."
    )


class OperationInfo(BaseModel):
    name: str
    description: str
    read_only: bool


class RateLimitStatsResponse(BaseModel):
    """Raw limiter storage counters (stale-but-unswept entries included)."""

    total_keys: int = Field(..., description="Tracked (tenant, operation) keys.")
    total_requests: int = Field(..., description="Stored timestamps across all keys.")


# --- Operation arguments -------------------------------------------------
# Unknown fields are ignored so routing fields (tenantId, metadata) never fail
# validation.


class _Arguments(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ContactIdArgs(_Arguments):
    contactId: str = Field(..., min_length=1)


class Address(_Arguments):
    address: str | None = None
    city: str | None = None
    postalCode: str | None = None
    province: str | None = None
    country: str | None = None


class ContactFields(_Arguments):
    email: str | None = None
    phone: str | None = None
    vatnumber: str | None = None
    type: Literal["client", "supplier", "lead", "debtor", "creditor"] | None = None
    billAddress: Address | None = None
    tradename: str | None = None
    code: str | None = None
    note: str | None = None


class CreateContactArgs(ContactFields):
    name: str = Field(..., min_length=1)


class UpdateContactArgs(ContactFields):
    contactId: str = Field(..., min_length=1)
    name: str | None = Field(None, min_length=1)


class ListContactsArgs(_Arguments):
    page: int | None = Field(None, ge=1)
    phone: str | None = None
    mobile: str | None = None
    customId: list[str] | None = None


class WarehouseIdArgs(_Arguments):
    warehouseId: str = Field(..., min_length=1)


class WarehouseFields(Address):
    email: str | None = None
    phone: str | None = None
    mobile: str | None = None


class CreateWarehouseArgs(WarehouseFields):
    name: str = Field(..., min_length=1)


class UpdateWarehouseArgs(WarehouseFields):
    warehouseId: str = Field(..., min_length=1)
    name: str | None = Field(None, min_length=1)


class WarehouseStockArgs(_Arguments):
    warehouseId: str = Field(..., min_length=1)
    page: int | None = Field(None, ge=1)
