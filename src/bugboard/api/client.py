"""
BugApiClient — the remote bug store, via httpx.

Endpoints (relative to the configured base URL):

  GET    /bugs               — every item
  POST   /bugs               — create
  PUT    /bugs/{id}          — full update
  PATCH  /bugs/{id}/status   — change the status (board column) only
  DELETE /bugs/{id}          — delete

Transport failures and non-2xx responses are converted to
:class:`~bugboard.core.exceptions.ApiError` subclasses here; raw httpx
exceptions never leave this module.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from bugboard.core.constants import DEFAULT_API_URL, DEFAULT_HTTP_TIMEOUT_SECONDS
from bugboard.core.exceptions import ApiError, FetchError, UpdateError
from bugboard.core.models import Item

logger = structlog.get_logger()


class BugApiClient:
    """Async client for the bug store REST API."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        *,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        token: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._token = token
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(
        cls, config: Any, transport: httpx.AsyncBaseTransport | None = None
    ) -> BugApiClient:
        """Build a client from a :class:`~bugboard.core.config.BugBoardConfig`."""
        token = config.api.token.get_secret_value() if config.api.token else ""
        return cls(
            config.api.base_url,
            timeout=config.api.timeout_seconds,
            token=token,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=self._headers(),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> BugApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def fetch_all_items(self) -> list[Item]:
        """Return every item in the store, normalised."""
        data = await self._request("GET", "/bugs", error_cls=FetchError, action="fetch items")
        if not isinstance(data, list):
            raise FetchError(f"Expected a list of items, got {type(data).__name__}")

        items: list[Item] = []
        for raw in data:
            if not isinstance(raw, dict):
                logger.warning("item_skipped_malformed", error="payload is not an object")
                continue
            try:
                items.append(Item.from_api(raw))
            except ValueError as exc:
                logger.warning("item_skipped_malformed", error=str(exc))
        logger.debug("items_fetched", count=len(items))
        return items

    async def set_item_column(self, item_id: str, column: str) -> Item | None:
        """Change only the status of *item_id*. Returns the updated item when echoed back."""
        data = await self._request(
            "PATCH",
            f"/bugs/{_quote(item_id)}/status",
            json={"status": column},
            error_cls=UpdateError,
            action="update item status",
        )
        logger.debug("item_column_set", item_id=item_id, column=column)
        return _item_or_none(data)

    async def create_item(self, fields: dict[str, Any]) -> Item:
        data = await self._request("POST", "/bugs", json=fields, action="create item")
        item = _item_or_none(data)
        if item is None:
            raise ApiError("Create response did not contain an item")
        logger.info("item_created", item_id=item.id)
        return item

    async def update_item(self, item_id: str, fields: dict[str, Any]) -> Item:
        path = f"/bugs/{_quote(item_id)}"
        data = await self._request("PUT", path, json=fields, action="update item")
        item = _item_or_none(data)
        if item is None:
            raise ApiError("Update response did not contain an item")
        logger.info("item_updated", item_id=item_id, fields=sorted(fields))
        return item

    async def delete_item(self, item_id: str) -> None:
        path = f"/bugs/{_quote(item_id)}"
        await self._request("DELETE", path, action="delete item", expect_body=False)
        logger.info("item_deleted", item_id=item_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "application/json"}
        if self._token:
            headers["authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        error_cls: type[ApiError] = ApiError,
        action: str,
        expect_body: bool = True,
    ) -> Any:
        client = await self._ensure_client()
        try:
            resp = await client.request(method, path, json=json)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            message = _server_message(exc.response) or f"HTTP {exc.response.status_code}"
            logger.warning(
                "api_request_failed",
                method=method,
                path=path,
                status=exc.response.status_code,
                error=message,
            )
            raise error_cls(
                f"Failed to {action}: {message}", status_code=exc.response.status_code
            ) from exc
        except httpx.RequestError as exc:
            logger.warning("api_request_error", method=method, path=path, error=str(exc))
            raise error_cls(f"Failed to {action}: {exc}") from exc

        if not expect_body or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise error_cls(f"Failed to {action}: response is not JSON") from exc


def _item_or_none(data: Any) -> Item | None:
    if not isinstance(data, dict):
        return None
    try:
        return Item.from_api(data)
    except ValueError:
        return None


def _server_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return ""
    if isinstance(body, dict):
        return str(body.get("message") or "")
    return ""


def _quote(item_id: str) -> str:
    # Ids are opaque; a "/" or "?" must not change the route
    return quote(str(item_id), safe="")
