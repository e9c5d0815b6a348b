from __future__ import annotations

import asyncio
from http import HTTPStatus
from typing import Any, Optional

import pytest

from adapters.document_store.memory_document_store import InMemoryDocumentStore
from adapters.matcher.memory_matcher import InMemoryMatcher
from contracts import (
    ConsistencyLevel,
    DocumentIdentity,
    ErrorKind,
    ReplicationType,
    StoreOutcome,
    SubmitOptions,
    SubmittedDocument,
    VersionType,
    WriteOptions,
)
from core.percosert import PercosertService, build_write_options
from errors import InvalidVersionError, MatcherUnavailableError, VersionConflictError


class _SpyMatcher:
    def __init__(self, matches: list[str] | None = None, error: Exception | None = None):
        self._matches = matches or []
        self._error = error
        self.calls: list[tuple[str, str, dict[str, Any], Any]] = []

    async def match(self, index, doc_type, doc, query=None, *, prefer_local=True):
        self.calls.append((index, doc_type, doc, query))
        if self._error is not None:
            raise self._error
        return list(self._matches)

    async def close(self) -> None:
        return None


class _SpyStore:
    def __init__(self, version: int = 1, error: Exception | None = None, echo: list[str] | None = None):
        self._version = version
        self._error = error
        self._echo = echo
        self.calls: list[tuple[DocumentIdentity, dict[str, Any], WriteOptions]] = []

    async def write(self, identity, source, options):
        self.calls.append((identity, source, options))
        if self._error is not None:
            raise self._error
        return StoreOutcome(
            index=identity.index,
            doc_type=identity.doc_type,
            doc_id=identity.doc_id or "generated",
            version=self._version,
            matches=self._echo,
        )

    async def get(self, identity):
        raise KeyError(identity)

    async def close(self) -> None:
        return None


def _doc(
    source: Optional[dict[str, Any]] = None,
    doc_id: Optional[str] = "1",
    **options: Any,
) -> SubmittedDocument:
    return SubmittedDocument(
        identity=DocumentIdentity(index="logs", doc_type="entry", doc_id=doc_id),
        source=source if source is not None else {"query": {"match_all": {}}, "title": "t"},
        options=SubmitOptions(**options),
    )


def test_submit_with_no_matches_persists_empty_list():
    matcher, store = _SpyMatcher([]), _SpyStore(version=1)

    outcome = asyncio.run(PercosertService(matcher, store).submit(_doc()))

    assert outcome.ok is True
    assert outcome.status == HTTPStatus.CREATED
    assert outcome.matches == []
    assert outcome.version == 1
    (_, persisted, _), = store.calls
    assert persisted == {"title": "t", "percosert": []}


def test_submit_passes_doc_without_query_and_query_to_matcher():
    matcher, store = _SpyMatcher(["q1"]), _SpyStore()

    asyncio.run(PercosertService(matcher, store).submit(_doc()))

    assert matcher.calls == [("logs", "entry", {"title": "t"}, {"match_all": {}})]


def test_submit_echoes_matches_in_matcher_order():
    matcher, store = _SpyMatcher(["q2", "q1"]), _SpyStore(version=1)

    outcome = asyncio.run(PercosertService(matcher, store).submit(_doc()))

    (_, persisted, _), = store.calls
    assert persisted["percosert"] == ["q2", "q1"]
    assert outcome.matches == ["q2", "q1"]


def test_submit_overwrite_is_ok_status():
    outcome = asyncio.run(PercosertService(_SpyMatcher(), _SpyStore(version=2)).submit(_doc()))

    assert outcome.status == HTTPStatus.OK


def test_submit_prefers_matches_echoed_by_store():
    store = _SpyStore(echo=["from-store"])

    outcome = asyncio.run(PercosertService(_SpyMatcher(["q1"]), store).submit(_doc()))

    assert outcome.matches == ["from-store"]


@pytest.mark.parametrize("mode", ["create", "", "INDEX", "update", "delete"])
def test_invalid_write_mode_fails_fast_without_backend_calls(mode):
    matcher, store = _SpyMatcher(["q1"]), _SpyStore()

    outcome = asyncio.run(PercosertService(matcher, store).submit(_doc(write_mode=mode)))

    assert outcome.ok is False
    assert outcome.status == HTTPStatus.BAD_REQUEST
    assert outcome.error is not None
    assert outcome.error.kind == ErrorKind.INVALID_WRITE_MODE
    assert f"[{mode}]" in outcome.error.message
    assert matcher.calls == []
    assert store.calls == []


def test_index_write_mode_is_accepted():
    store = _SpyStore()

    outcome = asyncio.run(PercosertService(_SpyMatcher(), store).submit(_doc(write_mode="index")))

    assert outcome.ok is True
    assert len(store.calls) == 1


def test_matcher_failure_short_circuits_store():
    matcher = _SpyMatcher(error=MatcherUnavailableError("connection refused"))
    store = _SpyStore()

    outcome = asyncio.run(PercosertService(matcher, store).submit(_doc()))

    assert outcome.ok is False
    assert outcome.error is not None
    assert outcome.error.kind == ErrorKind.MATCH_FAILURE
    assert outcome.status == HTTPStatus.SERVICE_UNAVAILABLE
    assert len(matcher.calls) == 1
    assert store.calls == []


def test_store_conflict_is_store_failure_without_matches():
    store = _SpyStore(error=VersionConflictError("logs", "entry", "1", current=2, provided=1))

    outcome = asyncio.run(PercosertService(_SpyMatcher(["q1"]), store).submit(_doc(version=1)))

    assert outcome.ok is False
    assert outcome.error is not None
    assert outcome.error.kind == ErrorKind.STORE_FAILURE
    assert outcome.status == HTTPStatus.CONFLICT
    assert outcome.matches is None
    assert "matches" not in outcome.to_response()


def test_malformed_store_outcome_is_reported_as_store_failure():
    class _BrokenStore(_SpyStore):
        async def write(self, identity, source, options):
            self.calls.append((identity, source, options))
            return StoreOutcome.model_construct(
                index="logs", doc_type="entry", doc_id="1", version=0, matches=None
            )

    store = _BrokenStore()
    outcome = asyncio.run(PercosertService(_SpyMatcher(), store).submit(_doc()))

    assert outcome.error is not None
    assert outcome.error.kind == ErrorKind.STORE_FAILURE
    assert len(store.calls) == 1


def test_matcher_runs_strictly_before_store():
    order: list[str] = []

    class _OrderedMatcher(_SpyMatcher):
        async def match(self, *args, **kwargs):
            order.append("match")
            await asyncio.sleep(0)
            return await super().match(*args, **kwargs)

    class _OrderedStore(_SpyStore):
        async def write(self, *args):
            order.append("store")
            return await super().write(*args)

    asyncio.run(PercosertService(_OrderedMatcher(), _OrderedStore()).submit(_doc()))

    assert order == ["match", "store"]


def test_submit_does_not_mutate_submitted_source():
    doc = _doc()

    asyncio.run(PercosertService(_SpyMatcher(["q1"]), _SpyStore()).submit(doc))

    assert doc.source == {"query": {"match_all": {}}, "title": "t"}


def test_build_write_options_parent_sets_routing_only_when_absent():
    opts = build_write_options(SubmitOptions(parent="p1"))
    assert opts.routing == "p1"
    assert opts.parent == "p1"

    opts = build_write_options(SubmitOptions(routing="r1", parent="p1"))
    assert opts.routing == "r1"
    assert opts.parent == "p1"


def test_build_write_options_defaults_and_passthrough():
    opts = build_write_options(SubmitOptions(), default_timeout_ms=1234)

    assert opts.timeout_ms == 1234
    assert opts.ttl_ms is None
    assert opts.refresh is None
    assert opts.replication is None
    assert opts.consistency is None

    opts = build_write_options(SubmitOptions(
        timestamp="1700000000000",
        ttl_ms=0,
        timeout_ms=500,
        refresh=True,
        version=7,
        version_type=VersionType.EXTERNAL,
        replication=ReplicationType.ASYNC,
        consistency=ConsistencyLevel.QUORUM,
        percolate="*",
    ))
    assert opts.timestamp == "1700000000000"
    assert opts.ttl_ms == 0
    assert opts.timeout_ms == 500
    assert opts.refresh is True
    assert opts.version == 7
    assert opts.version_type == VersionType.EXTERNAL
    assert opts.replication == ReplicationType.ASYNC
    assert opts.consistency == ConsistencyLevel.QUORUM
    assert opts.percolate == "*"


def test_end_to_end_with_in_memory_backends():
    matcher = InMemoryMatcher()
    matcher.register("logs", "q1", {"match": {"title": "error"}})
    matcher.register("logs", "q2", {"term": {"level": "warn"}})
    store = InMemoryDocumentStore()
    service = PercosertService(matcher, store)

    first = asyncio.run(service.submit(_doc({"title": "disk error", "level": "warn"})))
    second = asyncio.run(service.submit(_doc({"title": "all good", "level": "info"})))

    assert first.status == HTTPStatus.CREATED
    assert first.matches == ["q1", "q2"]
    assert second.status == HTTPStatus.OK
    assert second.version == 2
    assert second.matches == []
    stored = asyncio.run(store.get(DocumentIdentity(index="logs", doc_type="entry", doc_id="1")))
    assert stored.source == {"title": "all good", "level": "info", "percosert": []}


def test_external_version_zero_is_rejected_without_writing():
    store = InMemoryDocumentStore()
    service = PercosertService(InMemoryMatcher(), store)

    outcome = asyncio.run(service.submit(_doc(version=0, version_type=VersionType.EXTERNAL)))

    assert outcome.ok is False
    assert outcome.error is not None
    assert outcome.error.kind == ErrorKind.STORE_FAILURE
    assert outcome.error.reason == InvalidVersionError.__name__
    assert outcome.status == HTTPStatus.BAD_REQUEST
    assert store.writes == 0
