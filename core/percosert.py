"""
PercosertService — percolate-then-store jako jedna operacja widoczna dla klienta.

Kolejność: walidacja write_mode → Matcher → DocumentRewriter → DocumentStore
→ ResponseComposer. Każdy błąd kończy przebieg i daje dokładnie jeden Outcome.

Dwa wywołania backendów są sekwencyjne (match zawsze przed zapisem) i nie są
atomowe: anulowanie żądania po stronie klienta nie cofa zapisu, który już
trwa. Brak retry na tym poziomie.
"""
from __future__ import annotations

import logging
from enum import Enum

from contracts import (
    ALLOWED_WRITE_MODES,
    DEFAULT_WRITE_TIMEOUT_MS,
    ErrorKind,
    MatchResult,
    Outcome,
    SubmitOptions,
    SubmittedDocument,
    WriteOptions,
)
from core.composer import compose, compose_error
from core.rewriter import rewrite
from errors import InvalidWriteModeError
from ports.document_store import DocumentStore
from ports.matcher import Matcher

logger = logging.getLogger("percosert.service")


class SubmitStage(str, Enum):
    IDLE = "idle"
    MATCHING = "matching"
    REWRITING = "rewriting"
    STORING = "storing"
    DONE = "done"
    FAILED = "failed"


def build_write_options(
    options: SubmitOptions,
    default_timeout_ms: int = DEFAULT_WRITE_TIMEOUT_MS,
) -> WriteOptions:
    """Maps caller options onto store options; the store always inserts or overwrites."""
    # routing najpierw, potem parent: parent ustawia routing tylko gdy klient go nie podał
    routing = options.routing
    if options.parent is not None and routing is None:
        routing = options.parent

    return WriteOptions(
        routing=routing,
        parent=options.parent,
        timestamp=options.timestamp,
        ttl_ms=options.ttl_ms,
        timeout_ms=options.timeout_ms if options.timeout_ms is not None else default_timeout_ms,
        refresh=options.refresh,
        version=options.version,
        version_type=options.version_type,
        replication=options.replication,
        consistency=options.consistency,
        percolate=options.percolate,
    )


class PercosertService:
    def __init__(
        self,
        matcher: Matcher,
        store: DocumentStore,
        default_timeout_ms: int = DEFAULT_WRITE_TIMEOUT_MS,
    ) -> None:
        self._matcher = matcher
        self._store = store
        self._default_timeout_ms = default_timeout_ms

    async def submit(self, doc: SubmittedDocument) -> Outcome:
        ident = doc.identity
        stage = SubmitStage.IDLE

        mode = doc.options.write_mode
        if mode not in ALLOWED_WRITE_MODES:
            exc = InvalidWriteModeError(mode)
            logger.warning("Rejected %s/%s: %s", ident.index, ident.doc_type, exc)
            return compose_error(ErrorKind.INVALID_WRITE_MODE, exc)

        stage = self._advance(doc, stage, SubmitStage.MATCHING)
        try:
            matches: MatchResult = list(await self._matcher.match(
                ident.index,
                ident.doc_type,
                doc.doc_without_query(),
                doc.query,
                prefer_local=doc.options.prefer_local,
            ))
        except Exception as exc:
            self._advance(doc, stage, SubmitStage.FAILED)
            logger.warning("Percolate failed for %s/%s: %s", ident.index, ident.doc_type, exc)
            return compose_error(ErrorKind.MATCH_FAILURE, exc)

        for match in matches:
            logger.info("match: %s", match)

        stage = self._advance(doc, stage, SubmitStage.REWRITING)
        source = rewrite(doc.source, matches)
        options = build_write_options(doc.options, self._default_timeout_ms)

        stage = self._advance(doc, stage, SubmitStage.STORING)
        try:
            stored = await self._store.write(ident, source, options)
            outcome = compose(stored, matches)
        except Exception as exc:
            self._advance(doc, stage, SubmitStage.FAILED)
            logger.warning(
                "Store failed for %s/%s/%s: %s",
                ident.index, ident.doc_type, ident.doc_id, exc,
            )
            return compose_error(ErrorKind.STORE_FAILURE, exc)

        self._advance(doc, stage, SubmitStage.DONE)
        return outcome

    @staticmethod
    def _advance(doc: SubmittedDocument, current: SubmitStage, nxt: SubmitStage) -> SubmitStage:
        ident = doc.identity
        logger.debug(
            "percosert %s/%s/%s: %s -> %s",
            ident.index, ident.doc_type, ident.doc_id, current.value, nxt.value,
        )
        return nxt
