"""
Async HTTP client for the remote workspace API.

Thin wrapper over httpx.AsyncClient: bearer auth, a pinned API version
header and JSON bodies. Every call is a single attempt; there is no retry
or backoff layer. Callers decide what a failed call means.

Example:
    >>> async with WorkspaceClient(token) as client:
    ...     user = await client.get_current_user()
    ...     containers = await client.search_containers()
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any

import httpx

from .exceptions import WorkspaceAPIError, WorkspaceError
from .models import RemoteBlock, RemoteContainer, RemotePage, RemoteUser

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.notion.com/v1"
API_VERSION = "2022-06-28"

# Remote limit on children per append request
MAX_BLOCKS_PER_REQUEST = 100


def _chunks(items: list[dict[str, Any]], size: int) -> list[list[dict[str, Any]]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class WorkspaceClient:
    """
    Client for one integration token.

    Args:
        token: Integration secret
        base_url: API root, overridable for tests
        transport: Optional httpx transport (e.g. httpx.MockTransport)
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        token: str,
        base_url: str = API_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.token = token
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Notion-Version": API_VERSION,
                "Content-Type": "application/json",
            },
            transport=transport,
            timeout=timeout,
        )

    async def __aenter__(self) -> WorkspaceClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self, method: str, path: str, json: dict[str, Any] | None = None, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """
        Issue one request and return the decoded JSON body.

        Raises:
            WorkspaceAPIError: Non-2xx response; message taken from the body
            WorkspaceError: Transport failure (DNS, timeout, connection reset)
                or a 2xx body that is not a JSON object
        """
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            raise WorkspaceError(f"Network error: {e}", method=method, path=path) from e

        if not response.is_success:
            try:
                message = response.json().get("message") or response.reason_phrase
            except ValueError:
                message = response.text or response.reason_phrase
            logger.debug("%s %s failed with %d: %s", method, path, response.status_code, message)
            raise WorkspaceAPIError(response.status_code, message, method=method, path=path)

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.debug("%s %s returned a non-JSON body: %.200s", method, path, response.text)
            raise WorkspaceError(
                "Invalid response body", method=method, path=path, status_code=response.status_code
            )
        return data

    # Users

    async def get_current_user(self) -> RemoteUser:
        """Verify the token by fetching the integration's bot user."""
        return RemoteUser.model_validate(await self._request("GET", "/users/me"))

    # Containers

    async def search_containers(self) -> list[RemoteContainer]:
        """List every database shared with the integration."""
        body = {"filter": {"property": "object", "value": "database"}}
        data = await self._request("POST", "/search", json=body)
        return [RemoteContainer.model_validate(item) for item in data.get("results", [])]

    async def get_container(self, container_id: str) -> RemoteContainer:
        return RemoteContainer.model_validate(await self._request("GET", f"/databases/{container_id}"))

    async def update_container_properties(
        self, container_id: str, properties: dict[str, Any]
    ) -> RemoteContainer:
        """Add or change property definitions on a container's schema."""
        data = await self._request("PATCH", f"/databases/{container_id}", json={"properties": properties})
        return RemoteContainer.model_validate(data)

    # Pages

    async def create_page(
        self,
        container_id: str,
        properties: dict[str, Any],
        children: list[dict[str, Any]] | None = None,
    ) -> RemotePage:
        """
        Create a page in *container_id*.

        The first 100 children ride along with the create request; the
        rest are appended afterwards.
        """
        batches = _chunks(children or [], MAX_BLOCKS_PER_REQUEST)
        body: dict[str, Any] = {
            "parent": {"database_id": container_id},
            "properties": properties,
            "children": batches[0] if batches else [],
        }
        page = RemotePage.model_validate(await self._request("POST", "/pages", json=body))
        for batch in batches[1:]:
            await self._request("PATCH", f"/blocks/{page.id}/children", json={"children": batch})
        return page

    async def update_page_properties(self, page_id: str, properties: dict[str, Any]) -> RemotePage:
        data = await self._request("PATCH", f"/pages/{page_id}", json={"properties": properties})
        return RemotePage.model_validate(data)

    async def get_page(self, page_id: str) -> RemotePage:
        return RemotePage.model_validate(await self._request("GET", f"/pages/{page_id}"))

    async def archive_page(self, page_id: str) -> None:
        await self._request("PATCH", f"/pages/{page_id}", json={"archived": True})

    # Blocks

    async def list_blocks(self, page_id: str) -> list[RemoteBlock]:
        """Fetch every top-level block of a page, following pagination."""
        blocks: list[RemoteBlock] = []
        cursor: str | None = None
        while True:
            params: dict[str, Any] = {"page_size": MAX_BLOCKS_PER_REQUEST}
            if cursor:
                params["start_cursor"] = cursor
            data = await self._request("GET", f"/blocks/{page_id}/children", params=params)
            blocks.extend(RemoteBlock.model_validate(item) for item in data.get("results", []))
            cursor = data.get("next_cursor")
            if not data.get("has_more") or not cursor:
                return blocks

    async def append_blocks(self, page_id: str, children: list[dict[str, Any]]) -> None:
        for batch in _chunks(children, MAX_BLOCKS_PER_REQUEST):
            await self._request("PATCH", f"/blocks/{page_id}/children", json={"children": batch})

    async def delete_block(self, block_id: str) -> None:
        await self._request("DELETE", f"/blocks/{block_id}")

    async def replace_page_content(self, page_id: str, children: list[dict[str, Any]]) -> None:
        """
        Delete every existing block on the page, then append *children*.

        No diffing: the page body is rebuilt wholesale on each update.
        """
        for block in await self.list_blocks(page_id):
            await self.delete_block(block.id)
        await self.append_blocks(page_id, children)


__all__ = ["API_BASE_URL", "API_VERSION", "MAX_BLOCKS_PER_REQUEST", "WorkspaceClient"]
