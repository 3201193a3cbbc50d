"""
AnalysisClient — opaque AI analysis of an issue description.

``analyze()`` fans out five concurrent calls to the analysis service:

  POST /analyze/priority   → "HIGH" | "MEDIUM" | ...
  POST /analyze/severity   → "CRITICAL" | "NORMAL" | ...
  POST /analyze/entities   → {"tags": [...], ...}
  POST /analyze/similar    → [{"id": ..., "title": ...}, ...]
  POST /suggest/solutions  → ["...", ...]

Inputs travel as query parameters. Every call falls back independently
to a default value when it fails, so ``analyze()`` never raises for a
remote problem; ``confidence`` reports the share of calls that succeeded.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from bugboard.core.constants import (
    DEFAULT_AI_URL,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_SIMILAR_LIMIT,
    FALLBACK_PRIORITY,
    FALLBACK_SEVERITY,
)

logger = structlog.get_logger()

_MISSING = object()


@dataclass
class AnalysisResult:
    priority: str = FALLBACK_PRIORITY
    severity: str = FALLBACK_SEVERITY
    tags: list[str] = field(default_factory=list)
    similar_bugs: list[dict[str, Any]] = field(default_factory=list)
    solutions: list[str] = field(default_factory=list)
    entities: dict[str, Any] = field(default_factory=dict)
    confidence: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "priority": self.priority,
            "severity": self.severity,
            "tags": list(self.tags),
            "similarBugs": list(self.similar_bugs),
            "solutions": list(self.solutions),
            "entities": dict(self.entities),
            "confidence": self.confidence,
        }


class AnalysisClient:
    """Async client for the AI analysis service."""

    def __init__(
        self,
        base_url: str = DEFAULT_AI_URL,
        *,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        similar_limit: int = DEFAULT_SIMILAR_LIMIT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._similar_limit = similar_limit
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def analyze(self, description: str, title: str | None = None) -> AnalysisResult:
        params: dict[str, Any] = {"description": description}
        if title:
            params["title"] = title

        priority, severity, entities, similar, solutions = await asyncio.gather(
            self._post("/analyze/priority", params),
            self._post("/analyze/severity", params),
            self._post("/analyze/entities", params),
            self._post("/analyze/similar", {**params, "limit": self._similar_limit}),
            self._post("/suggest/solutions", params),
        )
        outcomes = (priority, severity, entities, similar, solutions)
        succeeded = sum(1 for o in outcomes if o is not _MISSING)

        result = AnalysisResult(
            priority=_label(priority, FALLBACK_PRIORITY),
            severity=_label(severity, FALLBACK_SEVERITY),
            entities=entities if isinstance(entities, dict) else {},
            similar_bugs=[s for s in similar if isinstance(s, dict)]
            if isinstance(similar, list)
            else [],
            solutions=[str(s) for s in solutions] if isinstance(solutions, list) else [],
            confidence=round(succeeded / len(outcomes), 2),
        )
        result.tags = _tags_from_entities(result.entities)
        logger.debug(
            "analysis_complete",
            priority=result.priority,
            severity=result.severity,
            confidence=result.confidence,
        )
        return result

    async def _post(self, path: str, params: dict[str, Any]) -> Any:
        client = await self._ensure_client()
        try:
            resp = await client.post(path, params=params)
            resp.raise_for_status()
            if not resp.content:
                return _MISSING
            try:
                return resp.json()
            except ValueError:
                # The label endpoints may answer with plain text
                return resp.text.strip() or _MISSING
        except httpx.HTTPError as exc:
            logger.warning("analysis_call_failed", path=path, error=str(exc))
            return _MISSING


def _label(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip().upper()
    if isinstance(value, dict):
        for key in ("priority", "severity", "label", "value"):
            if isinstance(value.get(key), str) and value[key].strip():
                return value[key].strip().upper()
    return default


def _tags_from_entities(entities: dict[str, Any]) -> list[str]:
    tags = entities.get("tags")
    if isinstance(tags, list):
        return [str(t) for t in tags if str(t).strip()]

    flat: list[str] = []
    for value in entities.values():
        values = value if isinstance(value, list) else [value]
        for v in values:
            text = v.strip() if isinstance(v, str) else ""
            if text and text not in flat:
                flat.append(text)
    return flat
