"""Catalogue of callable operations mapped onto ERP API endpoints.

Every operation validates its arguments with a pydantic model and forwards
them to a single REST endpoint. Only contacts and warehouses are exposed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, TypeVar
from urllib.parse import quote

from pydantic import BaseModel, ValidationError

from erp_gateway.adapters.erp.base import AbstractERPClient
from erp_gateway.core.errors import ValidationAppError
from erp_gateway.schemas.tools import (
    ContactIdArgs,
    CreateContactArgs,
    CreateWarehouseArgs,
    ListContactsArgs,
    UpdateContactArgs,
    UpdateWarehouseArgs,
    WarehouseIdArgs,
    WarehouseStockArgs,
)

Handler = Callable[[AbstractERPClient, dict[str, Any]], Awaitable[Any]]

ArgsT = TypeVar("ArgsT", bound=BaseModel)


@dataclass(frozen=True)
class Operation:
    """A named, uniformly-shaped callable exposed by the gateway."""

    name: str
    description: str
    handler: Handler
    read_only: bool = False


def parse_arguments(model: type[ArgsT], arguments: dict[str, Any]) -> ArgsT:
    """Validate raw tool arguments against ``model``.

    Raises:
        ValidationAppError: If the arguments do not match the model.
    """
    try:
        return model.model_validate(arguments)
    except ValidationError as exc:
        raise ValidationAppError(
            code="invalid_arguments",
            message=f"Invalid arguments: {exc.error_count()} validation error(s)",
            details={
                "errors": exc.errors(include_url=False, include_context=False, include_input=False)
            },
        ) from exc


def _segment(value: str) -> str:
    return quote(value, safe="")


def _body(args: BaseModel, *, exclude: set[str] | None = None) -> dict[str, Any]:
    return args.model_dump(exclude_none=True, exclude=exclude)


# Contacts


async def list_contacts(client: AbstractERPClient, arguments: dict[str, Any]) -> Any:
    args = parse_arguments(ListContactsArgs, arguments)
    return await client.get("/contacts", _body(args))


async def get_contact(client: AbstractERPClient, arguments: dict[str, Any]) -> Any:
    args = parse_arguments(ContactIdArgs, arguments)
    return await client.get(f"/contacts/{_segment(args.contactId)}")


async def create_contact(client: AbstractERPClient, arguments: dict[str, Any]) -> Any:
    args = parse_arguments(CreateContactArgs, arguments)
    return await client.post("/contacts", _body(args))


async def update_contact(client: AbstractERPClient, arguments: dict[str, Any]) -> Any:
    args = parse_arguments(UpdateContactArgs, arguments)
    return await client.put(
        f"/contacts/{_segment(args.contactId)}",
        _body(args, exclude={"contactId"}),
    )


async def delete_contact(client: AbstractERPClient, arguments: dict[str, Any]) -> Any:
    args = parse_arguments(ContactIdArgs, arguments)
    return await client.delete(f"/contacts/{_segment(args.contactId)}")


# Warehouses


async def list_warehouses(client: AbstractERPClient, arguments: dict[str, Any]) -> Any:
    return await client.get("/warehouses")


async def get_warehouse(client: AbstractERPClient, arguments: dict[str, Any]) -> Any:
    args = parse_arguments(WarehouseIdArgs, arguments)
    return await client.get(f"/warehouses/{_segment(args.warehouseId)}")


async def create_warehouse(client: AbstractERPClient, arguments: dict[str, Any]) -> Any:
    args = parse_arguments(CreateWarehouseArgs, arguments)
    return await client.post("/warehouses", _body(args))


async def update_warehouse(client: AbstractERPClient, arguments: dict[str, Any]) -> Any:
    args = parse_arguments(UpdateWarehouseArgs, arguments)
    return await client.put(
        f"/warehouses/{_segment(args.warehouseId)}",
        _body(args, exclude={"warehouseId"}),
    )


async def delete_warehouse(client: AbstractERPClient, arguments: dict[str, Any]) -> Any:
    args = parse_arguments(WarehouseIdArgs, arguments)
    return await client.delete(f"/warehouses/{_segment(args.warehouseId)}")


async def list_warehouse_stock(client: AbstractERPClient, arguments: dict[str, Any]) -> Any:
    args = parse_arguments(WarehouseStockArgs, arguments)
    return await client.get(
        f"/warehouses/{_segment(args.warehouseId)}/stock",
        _body(args, exclude={"warehouseId"}),
    )


DEFAULT_OPERATIONS: tuple[Operation, ...] = (
    Operation("list_contacts", "List contacts, optionally filtered by phone or custom id.", list_contacts, True),
    Operation("get_contact", "Get a single contact by id.", get_contact, True),
    Operation("create_contact", "Create a contact (client, supplier, lead, ...).", create_contact),
    Operation("update_contact", "Update fields of an existing contact.", update_contact),
    Operation("delete_contact", "Delete a contact.", delete_contact),
    Operation("list_warehouses", "List all warehouses.", list_warehouses, True),
    Operation("get_warehouse", "Get a single warehouse by id.", get_warehouse, True),
    Operation("create_warehouse", "Create a warehouse.", create_warehouse),
    Operation("update_warehouse", "Update fields of an existing warehouse.", update_warehouse),
    Operation("delete_warehouse", "Delete a warehouse.", delete_warehouse),
    Operation("list_warehouse_stock", "List product stock held in a warehouse.", list_warehouse_stock, True),
)


def build_operation_registry(operations: Iterable[Operation] = DEFAULT_OPERATIONS) -> dict[str, Operation]:
    """Index operations by name.

    Raises:
        ValueError: If two operations share a name.
    """
    registry: dict[str, Operation] = {}
    for operation in operations:
        if operation.name in registry:
            raise ValueError(f"Duplicate operation name: {operation.name}")
        registry[operation.name] = operation
    return registry
