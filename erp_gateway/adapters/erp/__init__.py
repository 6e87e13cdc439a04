"""ERP adapter layer - abstracts over the upstream accounting REST API."""

from erp_gateway.adapters.erp.base import AbstractERPClient
from erp_gateway.adapters.erp.httpx_client import HttpxERPClient

__all__ = [
    "AbstractERPClient",
    "HttpxERPClient",
]
