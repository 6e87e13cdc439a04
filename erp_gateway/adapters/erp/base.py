from abc import ABC, abstractmethod
from typing import Any


class AbstractERPClient(ABC):
	"""Interface for clients talking to the upstream ERP REST API."""

	@abstractmethod
	async def request(
		self,
		method: str,
		path: str,
		*,
		params: dict[str, Any] | None = None,
		json_body: dict[str, Any] | None = None,
	) -> Any:
		"""Send a request to the ERP API and return the decoded JSON body.

		Args:
			method: HTTP method (GET, POST, PUT, DELETE).
			path: Resource path relative to the API base URL (e.g., "/contacts").
			params: Optional query string parameters.
			json_body: Optional JSON payload.

		Returns:
			Any: Decoded JSON response (None for empty bodies).

		Raises:
			UpstreamAppError: If the API returns an error status or cannot be reached.
		"""
		...

	async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
		return await self.request("GET", path, params=params)

	async def post(self, path: str, body: dict[str, Any] | None = None) -> Any:
		return await self.request("POST", path, json_body=body)

	async def put(self, path: str, body: dict[str, Any] | None = None) -> Any:
		return await self.request("PUT", path, json_body=body)

	async def delete(self, path: str) -> Any:
		return await self.request("DELETE", path)

	async def aclose(self) -> None:
		"""Release network resources (no-op by default)."""
