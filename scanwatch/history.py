"""Client for the read-only scan history endpoint."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from .errors import HistoryQueryError
from .models import AnalysisRecord


class HistorySource(Protocol):
    async def fetch_history(self) -> list[AnalysisRecord]: ...


def _normalize_base_url(url: str) -> str:
    return url.rstrip("/")


def _error_detail(body: str) -> str | None:
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        return None
    if isinstance(payload, Mapping):
        detail = payload.get("error") or payload.get("detail")
        if isinstance(detail, str) and detail:
            return detail
    return None


def _unwrap_envelope(payload: Any) -> list[Any]:
    if not isinstance(payload, Mapping):
        raise HistoryQueryError("Unexpected history response payload")
    if not payload.get("success"):
        raise HistoryQueryError(payload.get("error") or "Failed to fetch analysis history")
    data = payload.get("data")
    if data is None:
        return []
    if not isinstance(data, list):
        raise HistoryQueryError("History data must be a list")
    return data


@dataclass(slots=True)
class AnalysisHistoryClient:
    """Fetches prior scan records from ``{base_url}/analysis``."""

    base_url: str
    headers: Mapping[str, str] | None = None
    timeout_s: float | None = 10.0
    client: httpx.AsyncClient | None = None

    @asynccontextmanager
    async def _client_context(self) -> AsyncIterator[httpx.AsyncClient]:
        if self.client is not None:
            yield self.client
            return
        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            yield client

    async def fetch_history(self) -> list[AnalysisRecord]:
        url = f"{_normalize_base_url(self.base_url)}/analysis"
        async with self._client_context() as client:
            response = await client.get(url, headers=dict(self.headers or {}))
        if not 200 <= response.status_code < 300:
            detail = _error_detail(response.text)
            detail_text = f": {detail}" if detail else ""
            raise HistoryQueryError(
                f"status {response.status_code}{detail_text}",
                status_code=response.status_code,
            )
        try:
            rows = _unwrap_envelope(response.json())
        except json.JSONDecodeError as exc:
            raise HistoryQueryError("History response is not JSON") from exc
        try:
            return [AnalysisRecord.model_validate(row) for row in rows]
        except ValidationError as exc:
            raise HistoryQueryError(f"Invalid history record ({exc.error_count()} errors)") from exc


__all__ = ["AnalysisHistoryClient", "HistorySource"]
