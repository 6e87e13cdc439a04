"""ERP API client built on httpx."""

import logging
from typing import Any

import httpx

from erp_gateway.adapters.erp.base import AbstractERPClient
from erp_gateway.core.errors import UpstreamAppError

logger = logging.getLogger(__name__)


class HttpxERPClient(AbstractERPClient):
    """Async client for one tenant's ERP account.

    Each tenant gets its own instance so credentials never cross tenants.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        *,
        api_key_header: str = "key",
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the underlying httpx AsyncClient.

        Args:
            api_key: Tenant API key sent on every request.
            base_url: ERP API base URL.
            api_key_header: Header name carrying the API key.
            timeout_seconds: Timeout for requests in seconds.
            transport: Optional transport override (used by tests).
        """
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={api_key_header: api_key, "Accept": "application/json"},
            timeout=timeout_seconds,
            transport=transport,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self.client.request(method, path, params=params, json=json_body)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            logger.warning(
                "erp.request_failed",
                extra={"method": method, "path": path, "upstream_status": status_code},
            )
            raise UpstreamAppError(
                code="erp_http_error",
                message=f"ERP API returned HTTP {status_code} for {method} {path}",
                details={"upstream_status": status_code},
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "erp.request_error",
                extra={"method": method, "path": path, "error_type": type(exc).__name__},
            )
            raise UpstreamAppError(
                code="erp_unreachable",
                message=f"ERP API request failed: {exc}",
            ) from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamAppError(
                code="erp_invalid_response",
                message=f"ERP API returned a non-JSON body for {method} {path}",
            ) from exc

    async def aclose(self) -> None:
        await self.client.aclose()
