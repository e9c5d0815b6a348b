"""
InMemoryMatcher — implementacja portu Matcher w pamięci (dev i testy).

Zapytania rejestrowane są per index, w kolejności rejestracji; w tej samej
kolejności zwracane są dopasowania. Obsługiwany podzbiór DSL:

    match_all, term, terms, match, exists, range,
    bool (must / filter / should / must_not)

Pola zagnieżdżone adresowane ścieżką z kropkami ("user.name").
Opcjonalne `query` w żądaniu percolate filtruje zarejestrowane zapytania
po ich metadanych (tym samym DSL).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from contracts import MatchResult
from errors import MalformedQueryError

logger = logging.getLogger("percosert.memory_matcher")

_MISSING = object()


@dataclass
class RegisteredQuery:
    query_id: str
    query: dict[str, Any]
    metadata: dict[str, Any] = field(default_factory=dict)


class InMemoryMatcher:
    def __init__(self) -> None:
        self._queries: dict[str, dict[str, RegisteredQuery]] = {}

    def register(
        self,
        index: str,
        query_id: str,
        query: dict[str, Any],
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        """Registers (or replaces) a query. Malformed queries are rejected up front."""
        _validate(query)
        self._queries.setdefault(index, {})[query_id] = RegisteredQuery(
            query_id=query_id,
            query=query,
            metadata=dict(metadata or {}),
        )

    def unregister(self, index: str, query_id: str) -> None:
        """Raises KeyError if the query is not registered."""
        try:
            del self._queries[index][query_id]
        except KeyError:
            raise KeyError(f"Query not found: {index}/{query_id}") from None

    def registered(self, index: str) -> list[str]:
        return list(self._queries.get(index, {}))

    async def match(
        self,
        index: str,
        doc_type: str,
        doc: dict[str, Any],
        query: Optional[Any] = None,
        *,
        prefer_local: bool = True,
    ) -> MatchResult:
        if query is not None:
            if not isinstance(query, dict):
                raise MalformedQueryError(f"query must be an object, got {type(query).__name__}")
            _validate(query)

        matches: MatchResult = []
        for registered in self._queries.get(index, {}).values():
            if query is not None and not evaluate(query, registered.metadata):
                continue
            if evaluate(registered.query, doc):
                matches.append(registered.query_id)
        logger.debug("Percolated %s/%s: %d match(es)", index, doc_type, len(matches))
        return matches

    async def close(self) -> None:
        return None


# ──────────────────────── Evaluation ─────────────────────────────────────

def evaluate(query: dict[str, Any], doc: dict[str, Any]) -> bool:
    """Returns True if doc satisfies query. Raises MalformedQueryError on unknown syntax."""
    if not isinstance(query, dict) or len(query) != 1:
        raise MalformedQueryError(f"query must have exactly one clause: {query!r}")
    (kind, body), = query.items()

    if kind == "match_all":
        return True
    if kind == "bool":
        return _eval_bool(body, doc)
    if kind == "exists":
        return _lookup(doc, _require_str(body, "field", kind)) not in (_MISSING, None)

    field_name, arg = _single_field(kind, body)
    value = _lookup(doc, field_name)
    if value is _MISSING:
        return False

    if kind == "term":
        if isinstance(arg, dict):
            arg = arg.get("value")
        return _any(value, lambda v: v == arg)
    if kind == "terms":
        if not isinstance(arg, list):
            raise MalformedQueryError(f"terms expects a list for [{field_name}]")
        return _any(value, lambda v: v in arg)
    if kind == "match":
        if isinstance(arg, dict):
            arg = arg.get("query")
        wanted = set(str(arg).lower().split())
        return _any(value, lambda v: bool(wanted & set(str(v).lower().split())))
    if kind == "range":
        if not isinstance(arg, dict):
            raise MalformedQueryError(f"range expects bounds for [{field_name}]")
        return _any(value, lambda v: _in_range(v, arg))

    raise MalformedQueryError(f"No query registered for [{kind}]")


def _validate(query: Any) -> None:
    if not isinstance(query, dict):
        raise MalformedQueryError(f"query must be an object, got {type(query).__name__}")
    _walk(query)


def _walk(query: dict[str, Any]) -> None:
    if len(query) != 1:
        raise MalformedQueryError(f"query must have exactly one clause: {query!r}")
    (kind, body), = query.items()
    if kind == "bool":
        for clause in _bool_clauses(body):
            _walk(clause)
    elif kind not in ("match_all", "term", "terms", "match", "exists", "range"):
        raise MalformedQueryError(f"No query registered for [{kind}]")


def _eval_bool(body: Any, doc: dict[str, Any]) -> bool:
    if not isinstance(body, dict):
        raise MalformedQueryError("bool expects an object")
    must = _as_list(body.get("must")) + _as_list(body.get("filter"))
    should = _as_list(body.get("should"))
    must_not = _as_list(body.get("must_not"))

    if not all(evaluate(q, doc) for q in must):
        return False
    if any(evaluate(q, doc) for q in must_not):
        return False
    if should and not must:
        return any(evaluate(q, doc) for q in should)
    return True


def _bool_clauses(body: Any) -> list[dict[str, Any]]:
    if not isinstance(body, dict):
        raise MalformedQueryError("bool expects an object")
    clauses: list[dict[str, Any]] = []
    for key in ("must", "filter", "should", "must_not"):
        for clause in _as_list(body.get(key)):
            if not isinstance(clause, dict):
                raise MalformedQueryError(f"bool.{key} expects objects")
            clauses.append(clause)
    return clauses


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _single_field(kind: str, body: Any) -> tuple[str, Any]:
    if not isinstance(body, dict) or len(body) != 1:
        raise MalformedQueryError(f"[{kind}] expects exactly one field")
    (name, arg), = body.items()
    return name, arg


def _require_str(body: Any, key: str, kind: str) -> str:
    if not isinstance(body, dict) or not isinstance(body.get(key), str):
        raise MalformedQueryError(f"[{kind}] requires [{key}]")
    return body[key]


def _lookup(doc: Any, path: str) -> Any:
    current = doc
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _any(value: Any, pred) -> bool:
    # pola wielowartościowe: wystarczy jedna pasująca wartość
    if isinstance(value, list):
        return any(pred(v) for v in value)
    return pred(value)


def _in_range(value: Any, bounds: dict[str, Any]) -> bool:
    try:
        if "gt" in bounds and not value > bounds["gt"]:
            return False
        if "gte" in bounds and not value >= bounds["gte"]:
            return False
        if "lt" in bounds and not value < bounds["lt"]:
            return False
        if "lte" in bounds and not value <= bounds["lte"]:
            return False
    except TypeError:
        return False
    return True
