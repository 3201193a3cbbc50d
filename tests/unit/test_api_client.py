"""Unit tests for BugApiClient — request shapes and error conversion."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from bugboard.api.client import BugApiClient
from bugboard.core.config import BugBoardConfig
from bugboard.core.exceptions import ApiError, FetchError, UpdateError

BASE = "http://bugs.test/api"

Handler = Callable[[httpx.Request], httpx.Response]


def _client(handler: Handler, **kwargs: object) -> BugApiClient:
    return BugApiClient(BASE, transport=httpx.MockTransport(handler), **kwargs)


class _Recorder:
    """Records every request and answers with a canned response."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response


# ---------------------------------------------------------------------------
# fetch_all_items
# ---------------------------------------------------------------------------


class TestFetchAllItems:
    @pytest.mark.asyncio
    async def test_returns_normalized_items(self) -> None:
        rec = _Recorder(
            httpx.Response(
                200,
                json=[
                    {"id": 1, "status": "open", "title": "Crash", "assignee": "Ada Lovelace"},
                    {"id": 2, "status": "done"},
                ],
            )
        )
        async with _client(rec) as client:
            items = await client.fetch_all_items()

        assert [i.id for i in items] == ["1", "2"]
        assert items[0].assignee.avatar == "AL"
        assert items[1].title == "Untitled"
        assert rec.requests[0].method == "GET"
        assert rec.requests[0].url.path == "/api/bugs"

    @pytest.mark.asyncio
    async def test_skips_malformed_entries(self) -> None:
        rec = _Recorder(httpx.Response(200, json=[{"status": "open"}, "junk", {"id": "3"}]))
        async with _client(rec) as client:
            items = await client.fetch_all_items()
        assert [i.id for i in items] == ["3"]

    @pytest.mark.asyncio
    async def test_non_list_body_raises(self) -> None:
        rec = _Recorder(httpx.Response(200, json={"bugs": []}))
        async with _client(rec) as client:
            with pytest.raises(FetchError, match="list"):
                await client.fetch_all_items()

    @pytest.mark.asyncio
    async def test_http_error_raises_fetch_error(self) -> None:
        rec = _Recorder(httpx.Response(503, json={"message": "maintenance"}))
        async with _client(rec) as client:
            with pytest.raises(FetchError, match="maintenance") as exc_info:
                await client.fetch_all_items()
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_transport_error_raises_fetch_error(self) -> None:
        def _refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(_refuse) as client:
            with pytest.raises(FetchError) as exc_info:
                await client.fetch_all_items()
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_invalid_json_raises_fetch_error(self) -> None:
        rec = _Recorder(httpx.Response(200, content=b"<html>"))
        async with _client(rec) as client:
            with pytest.raises(FetchError, match="JSON"):
                await client.fetch_all_items()


# ---------------------------------------------------------------------------
# set_item_column
# ---------------------------------------------------------------------------


class TestSetItemColumn:
    @pytest.mark.asyncio
    async def test_patches_status(self) -> None:
        rec = _Recorder(httpx.Response(200, json={"id": "7", "status": "done"}))
        async with _client(rec) as client:
            item = await client.set_item_column("7", "done")

        request = rec.requests[0]
        assert request.method == "PATCH"
        assert request.url.path == "/api/bugs/7/status"
        assert json.loads(request.content) == {"status": "done"}
        assert item is not None
        assert item.status == "done"

    @pytest.mark.asyncio
    async def test_item_id_escaped_in_path(self) -> None:
        rec = _Recorder(httpx.Response(204))
        async with _client(rec) as client:
            await client.set_item_column("a/b?c", "done")

        raw_path = rec.requests[0].url.raw_path
        assert raw_path == b"/api/bugs/a%2Fb%3Fc/status"

    @pytest.mark.asyncio
    async def test_empty_response_is_fine(self) -> None:
        rec = _Recorder(httpx.Response(204))
        async with _client(rec) as client:
            assert await client.set_item_column("7", "done") is None

    @pytest.mark.asyncio
    async def test_rejection_raises_update_error(self) -> None:
        rec = _Recorder(httpx.Response(409, json={"message": "transition not allowed"}))
        async with _client(rec) as client:
            with pytest.raises(UpdateError, match="transition not allowed") as exc_info:
                await client.set_item_column("7", "done")
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_update_error_is_api_error(self) -> None:
        rec = _Recorder(httpx.Response(500))
        async with _client(rec) as client:
            with pytest.raises(ApiError, match="HTTP 500"):
                await client.set_item_column("7", "done")


# ---------------------------------------------------------------------------
# create / update / delete
# ---------------------------------------------------------------------------


class TestCrud:
    @pytest.mark.asyncio
    async def test_create_posts_fields(self) -> None:
        rec = _Recorder(httpx.Response(201, json={"id": "9", "title": "New", "status": "open"}))
        async with _client(rec) as client:
            item = await client.create_item({"title": "New", "status": "open"})

        assert rec.requests[0].method == "POST"
        assert rec.requests[0].url.path == "/api/bugs"
        assert json.loads(rec.requests[0].content) == {"title": "New", "status": "open"}
        assert item.id == "9"

    @pytest.mark.asyncio
    async def test_create_without_item_in_response_raises(self) -> None:
        rec = _Recorder(httpx.Response(201, json={"ok": True}))
        async with _client(rec) as client:
            with pytest.raises(ApiError):
                await client.create_item({"title": "New"})

    @pytest.mark.asyncio
    async def test_update_puts_fields(self) -> None:
        rec = _Recorder(httpx.Response(200, json={"id": "9", "title": "Renamed"}))
        async with _client(rec) as client:
            item = await client.update_item("9", {"title": "Renamed"})

        assert rec.requests[0].method == "PUT"
        assert rec.requests[0].url.path == "/api/bugs/9"
        assert item.title == "Renamed"

    @pytest.mark.asyncio
    async def test_delete(self) -> None:
        rec = _Recorder(httpx.Response(204))
        async with _client(rec) as client:
            await client.delete_item("9")
        assert rec.requests[0].method == "DELETE"
        assert rec.requests[0].url.path == "/api/bugs/9"

    @pytest.mark.asyncio
    async def test_update_and_delete_escape_ids(self) -> None:
        rec = _Recorder(httpx.Response(200, json={"id": "x y", "title": "T"}))
        async with _client(rec) as client:
            await client.update_item("x y", {"title": "T"})
            rec.response = httpx.Response(204)
            await client.delete_item("../admin")

        assert rec.requests[0].url.raw_path == b"/api/bugs/x%20y"
        assert rec.requests[1].url.raw_path == b"/api/bugs/..%2Fadmin"

    @pytest.mark.asyncio
    async def test_delete_not_found(self) -> None:
        rec = _Recorder(httpx.Response(404, json={"message": "no such bug"}))
        async with _client(rec) as client:
            with pytest.raises(ApiError, match="no such bug") as exc_info:
                await client.delete_item("9")
        assert exc_info.value.status_code == 404


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    @pytest.mark.asyncio
    async def test_bearer_token_sent(self) -> None:
        rec = _Recorder(httpx.Response(200, json=[]))
        async with _client(rec, token="s3cret") as client:
            await client.fetch_all_items()
        assert rec.requests[0].headers["authorization"] == "Bearer s3cret"

    @pytest.mark.asyncio
    async def test_no_token_no_header(self) -> None:
        rec = _Recorder(httpx.Response(200, json=[]))
        async with _client(rec) as client:
            await client.fetch_all_items()
        assert "authorization" not in rec.requests[0].headers

    def test_from_config(self) -> None:
        config = BugBoardConfig.model_validate(
            {"api": {"base_url": "https://bugs.example.com/api/", "token": "t"}}
        )
        client = BugApiClient.from_config(config)
        assert client.base_url == "https://bugs.example.com/api"

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self) -> None:
        client = _client(_Recorder(httpx.Response(200, json=[])))
        await client.fetch_all_items()
        await client.close()
        await client.close()
