"""
InMemoryDocumentStore — implementacja portu DocumentStore w pamięci (dev i testy).
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from adapters.document_store.write_rules import expires_at, parse_timestamp, resolve_version
from contracts import MATCHES_FIELD, DocumentIdentity, StoredDocument, StoreOutcome, WriteOptions

logger = logging.getLogger("percosert.memory_store")


class InMemoryDocumentStore:
    def __init__(self) -> None:
        self._docs: dict[tuple[str, str, str], StoredDocument] = {}
        self.writes = 0

    async def write(
        self,
        identity: DocumentIdentity,
        source: dict[str, Any],
        options: WriteOptions,
    ) -> StoreOutcome:
        doc_id = identity.doc_id or uuid.uuid4().hex
        ident = identity.model_copy(update={"doc_id": doc_id})
        key = (ident.index, ident.doc_type, doc_id)
        now = datetime.now(tz=timezone.utc)

        existing = self._docs.get(key)
        current = existing.version if existing and not existing.is_expired(now) else None
        version = resolve_version(ident, current, options)

        self._docs[key] = StoredDocument(
            identity=ident,
            version=version,
            source=dict(source),
            routing=options.routing,
            parent=options.parent,
            timestamp=parse_timestamp(options.timestamp) or now,
            expires_at=expires_at(now, options.ttl_ms),
        )
        self.writes += 1
        logger.debug("Stored %s/%s/%s v%d", ident.index, ident.doc_type, doc_id, version)

        # percolate przy zapisie: echo zapisanych dopasowań
        matches: Optional[list[str]] = None
        if options.percolate is not None:
            matches = list(source.get(MATCHES_FIELD) or [])
        return StoreOutcome(
            index=ident.index,
            doc_type=ident.doc_type,
            doc_id=doc_id,
            version=version,
            matches=matches,
        )

    async def get(self, identity: DocumentIdentity) -> StoredDocument:
        doc = self._docs.get((identity.index, identity.doc_type, identity.doc_id or ""))
        if doc is None or doc.is_expired():
            raise KeyError(f"Document not found: {identity.index}/{identity.doc_type}/{identity.doc_id}")
        return doc

    async def close(self) -> None:
        return None
