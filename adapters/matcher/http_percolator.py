"""
Adapter: HttpPercolator
Wywołuje zewnętrzny percolator (API w stylu Elasticsearch):

    POST {base_url}/{index}/{type}/_percolate?prefer_local=true
    {"doc": {...}, "query": {...}}

Odpowiedź: {"ok": true, "matches": ["q1", "q2"]} lub
{"matches": [{"_index": "...", "_id": "q1"}, ...]}.
"""
from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, Optional

import httpx

from contracts import MatchResult
from errors import IndexMissingError, MalformedQueryError, MatcherUnavailableError, MatchError

logger = logging.getLogger("percosert.http_percolator")


class HttpPercolator:
    def __init__(
        self,
        base_url: str,
        timeout_ms: int = 10_000,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.strip().rstrip("/"),
            timeout=timeout_ms / 1000.0,
            transport=transport,
        )

    async def match(
        self,
        index: str,
        doc_type: str,
        doc: dict[str, Any],
        query: Optional[Any] = None,
        *,
        prefer_local: bool = True,
    ) -> MatchResult:
        body: dict[str, Any] = {"doc": doc}
        if query is not None:
            body["query"] = query

        try:
            response = await self._client.post(
                f"/{index}/{doc_type}/_percolate",
                json=body,
                params={"prefer_local": "true" if prefer_local else "false"},
            )
        except httpx.TimeoutException as exc:
            raise MatcherUnavailableError(f"Percolator timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise MatcherUnavailableError(f"Percolator unavailable: {exc}") from exc

        if response.status_code == 404:
            raise IndexMissingError(index)
        if response.status_code == 400:
            raise MalformedQueryError(f"Percolator rejected query: {_error_text(response)}")
        if response.status_code >= 400:
            # pozostałe błędy upstreamu (401, 429, 5xx) → 502
            raise MatchError(
                f"Percolator returned HTTP {response.status_code}: {_error_text(response)}",
                status=HTTPStatus.BAD_GATEWAY.value,
            )

        try:
            payload: Any = response.json()
        except ValueError as exc:
            raise MatchError(f"Percolator returned invalid JSON: {exc}") from exc
        return _parse_matches(payload)

    async def ping(self) -> bool:
        try:
            response = await self._client.get("/")
        except httpx.HTTPError as exc:
            logger.warning("Percolator ping failed: %s", exc)
            return False
        return response.status_code < 400

    async def close(self) -> None:
        await self._client.aclose()


def _parse_matches(payload: Any) -> MatchResult:
    if not isinstance(payload, dict) or not isinstance(payload.get("matches"), list):
        raise MatchError(f"Unexpected percolator response: {payload!r}")

    matches: MatchResult = []
    for item in payload["matches"]:
        if isinstance(item, str):
            matches.append(item)
        elif isinstance(item, dict) and "_id" in item:
            matches.append(str(item["_id"]))
        else:
            raise MatchError(f"Unexpected match entry: {item!r}")
    return matches


def _error_text(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text
    if isinstance(payload, dict) and "error" in payload:
        return str(payload["error"])
    return response.text
