"""Unit tests for AnalysisClient — fan-out, fallbacks and confidence."""

from __future__ import annotations

import httpx
import pytest

from bugboard.api.analysis import AnalysisClient, AnalysisResult

BASE = "http://ai.test/api/ai"


def _routes(overrides: dict[str, httpx.Response] | None = None):
    responses = {
        "/api/ai/analyze/priority": httpx.Response(200, json="high"),
        "/api/ai/analyze/severity": httpx.Response(200, json={"severity": "critical"}),
        "/api/ai/analyze/entities": httpx.Response(
            200, json={"components": ["editor", "autosave"], "errors": "NullPointerException"}
        ),
        "/api/ai/analyze/similar": httpx.Response(200, json=[{"id": "12", "title": "Crash"}]),
        "/api/ai/suggest/solutions": httpx.Response(200, json=["Check the save handler"]),
    }
    responses.update(overrides or {})
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return responses[request.url.path]

    return handler, seen


class TestAnalyze:
    @pytest.mark.asyncio
    async def test_all_calls_succeed(self) -> None:
        handler, seen = _routes()
        client = AnalysisClient(BASE, transport=httpx.MockTransport(handler))
        try:
            result = await client.analyze("Saving a draft crashes the editor", "Crash on save")
        finally:
            await client.close()

        assert result.priority == "HIGH"
        assert result.severity == "CRITICAL"
        assert result.tags == ["editor", "autosave", "NullPointerException"]
        assert result.similar_bugs == [{"id": "12", "title": "Crash"}]
        assert result.solutions == ["Check the save handler"]
        assert result.confidence == 1.0
        assert len(seen) == 5
        assert all(r.method == "POST" for r in seen)

    @pytest.mark.asyncio
    async def test_inputs_sent_as_query_params(self) -> None:
        handler, seen = _routes()
        client = AnalysisClient(BASE, similar_limit=5, transport=httpx.MockTransport(handler))
        try:
            await client.analyze("Saving a draft crashes", "Crash")
        finally:
            await client.close()

        by_path = {r.url.path: r for r in seen}
        priority = by_path["/api/ai/analyze/priority"]
        assert priority.url.params["description"] == "Saving a draft crashes"
        assert priority.url.params["title"] == "Crash"
        assert by_path["/api/ai/analyze/similar"].url.params["limit"] == "5"

    @pytest.mark.asyncio
    async def test_title_omitted_when_absent(self) -> None:
        handler, seen = _routes()
        client = AnalysisClient(BASE, transport=httpx.MockTransport(handler))
        try:
            await client.analyze("Saving a draft crashes")
        finally:
            await client.close()
        assert all("title" not in r.url.params for r in seen)

    @pytest.mark.asyncio
    async def test_partial_failure_falls_back_per_call(self) -> None:
        handler, _ = _routes(
            {
                "/api/ai/analyze/priority": httpx.Response(500),
                "/api/ai/analyze/similar": httpx.Response(503),
            }
        )
        client = AnalysisClient(BASE, transport=httpx.MockTransport(handler))
        try:
            result = await client.analyze("Saving a draft crashes the editor")
        finally:
            await client.close()

        assert result.priority == "MEDIUM"
        assert result.severity == "CRITICAL"
        assert result.similar_bugs == []
        assert result.confidence == 0.6

    @pytest.mark.asyncio
    async def test_service_down_gives_defaults(self) -> None:
        def _refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = AnalysisClient(BASE, transport=httpx.MockTransport(_refuse))
        try:
            result = await client.analyze("Saving a draft crashes the editor")
        finally:
            await client.close()

        assert result == AnalysisResult()
        assert result.priority == "MEDIUM"
        assert result.severity == "NORMAL"
        assert result.confidence == 0.0

    @pytest.mark.asyncio
    async def test_plain_text_label(self) -> None:
        handler, _ = _routes({"/api/ai/analyze/priority": httpx.Response(200, text="low\n")})
        client = AnalysisClient(BASE, transport=httpx.MockTransport(handler))
        try:
            result = await client.analyze("Saving a draft crashes the editor")
        finally:
            await client.close()
        assert result.priority == "LOW"

    @pytest.mark.asyncio
    async def test_explicit_tags_preferred(self) -> None:
        handler, _ = _routes(
            {
                "/api/ai/analyze/entities": httpx.Response(
                    200, json={"tags": ["ui", "crash"], "components": ["editor"]}
                )
            }
        )
        client = AnalysisClient(BASE, transport=httpx.MockTransport(handler))
        try:
            result = await client.analyze("Saving a draft crashes the editor")
        finally:
            await client.close()
        assert result.tags == ["ui", "crash"]


class TestAnalysisResult:
    def test_to_dict_uses_wire_keys(self) -> None:
        data = AnalysisResult(similar_bugs=[{"id": "1"}]).to_dict()
        assert data["similarBugs"] == [{"id": "1"}]
        assert data["priority"] == "MEDIUM"
        assert data["confidence"] == 0.0
