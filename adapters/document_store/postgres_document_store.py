"""
PostgresDocumentStore — implementacja portu DocumentStore na PostgreSQL.

Schema jest tworzona automatycznie przy pierwszym połączeniu (apply_schema).
Używa asyncpg bezpośrednio (bez ORM) dla przejrzystości i wydajności.

Zapis: w jednej transakcji SELECT ... FOR UPDATE na (index, type, id),
wyliczenie wersji (write_rules), potem upsert. Dokumenty z wygasłym ttl
traktowane są jak nieistniejące.

refresh / replication / consistency nie mają odpowiednika w Postgresie:
zapis jest widoczny od razu po commit.
"""
from __future__ import annotations

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

import asyncpg

from adapters.document_store.write_rules import expires_at, parse_timestamp, resolve_version
from contracts import MATCHES_FIELD, DocumentIdentity, StoredDocument, StoreOutcome, WriteOptions
from errors import StoreUnavailableError

logger = logging.getLogger("percosert.postgres_store")

# DDL — tworzone przy starcie jeśli nie istnieją
_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    index_name  TEXT NOT NULL,
    doc_type    TEXT NOT NULL,
    doc_id      TEXT NOT NULL,
    version     BIGINT NOT NULL,
    source      JSONB NOT NULL,
    routing     TEXT,
    parent      TEXT,
    ts          TIMESTAMPTZ NOT NULL DEFAULT now(),
    expires_at  TIMESTAMPTZ,
    PRIMARY KEY (index_name, doc_type, doc_id)
);

CREATE INDEX IF NOT EXISTS idx_documents_parent
    ON documents(index_name, parent);

CREATE INDEX IF NOT EXISTS idx_documents_expires_at
    ON documents(expires_at) WHERE expires_at IS NOT NULL;
"""


class PostgresDocumentStore:
    """Implementacja DocumentStore na PostgreSQL + asyncpg."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    # ──────────────────────── Lifecycle ──────────────────────────────────

    @classmethod
    async def create(cls, dsn: str) -> "PostgresDocumentStore":
        """Factory: tworzy pool połączeń i aplikuje schemat."""
        pool = await asyncpg.create_pool(dsn, min_size=2, max_size=10)
        store = cls(pool)
        await store._apply_schema()
        return store

    async def _apply_schema(self) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(_SCHEMA_SQL)

    async def ping(self) -> None:
        await self._pool.fetchval("SELECT 1")

    async def close(self) -> None:
        await self._pool.close()

    # ──────────────────────── Write ──────────────────────────────────────

    async def write(
        self,
        identity: DocumentIdentity,
        source: dict[str, Any],
        options: WriteOptions,
    ) -> StoreOutcome:
        """
        Zapisuje dokument z wersjonowaniem. Brak doc_id → generowany UUID.
        Błędy połączenia i timeout → StoreUnavailableError.
        """
        doc_id = identity.doc_id or uuid.uuid4().hex
        ident = identity.model_copy(update={"doc_id": doc_id})
        timeout = options.timeout_ms / 1000.0
        now = datetime.now(tz=timezone.utc)
        ts = parse_timestamp(options.timestamp) or now

        try:
            async with self._pool.acquire(timeout=timeout) as conn:
                async with conn.transaction():
                    row = await conn.fetchrow(
                        """
                        SELECT version, expires_at FROM documents
                        WHERE index_name = $1 AND doc_type = $2 AND doc_id = $3
                        FOR UPDATE
                        """,
                        ident.index,
                        ident.doc_type,
                        doc_id,
                        timeout=timeout,
                    )
                    current: Optional[int] = None
                    if row is not None and (row["expires_at"] is None or row["expires_at"] > now):
                        current = row["version"]

                    version = resolve_version(ident, current, options)

                    await conn.execute(
                        """
                        INSERT INTO documents
                            (index_name, doc_type, doc_id, version, source,
                             routing, parent, ts, expires_at)
                        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                        ON CONFLICT (index_name, doc_type, doc_id) DO UPDATE SET
                            version    = EXCLUDED.version,
                            source     = EXCLUDED.source,
                            routing    = EXCLUDED.routing,
                            parent     = EXCLUDED.parent,
                            ts         = EXCLUDED.ts,
                            expires_at = EXCLUDED.expires_at
                        """,
                        ident.index,
                        ident.doc_type,
                        doc_id,
                        version,
                        json.dumps(source),
                        options.routing,
                        options.parent,
                        ts,
                        expires_at(now, options.ttl_ms),
                        timeout=timeout,
                    )
        except (asyncio.TimeoutError, OSError, asyncpg.PostgresConnectionError) as exc:
            raise StoreUnavailableError(f"Document store unavailable: {exc}") from exc

        logger.debug("Stored %s/%s/%s v%d", ident.index, ident.doc_type, doc_id, version)

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

    # ──────────────────────── Read ────────────────────────────────────────

    async def get(self, identity: DocumentIdentity) -> StoredDocument:
        """Zwraca zapisany dokument. Rzuca KeyError jeśli nie znaleziono lub wygasł."""
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT index_name, doc_type, doc_id, version, source,
                       routing, parent, ts, expires_at
                FROM documents
                WHERE index_name = $1 AND doc_type = $2 AND doc_id = $3
                  AND (expires_at IS NULL OR expires_at > now())
                """,
                identity.index,
                identity.doc_type,
                identity.doc_id,
            )
        if row is None:
            raise KeyError(
                f"Document not found: {identity.index}/{identity.doc_type}/{identity.doc_id}"
            )
        return _row_to_document(row)


# ──────────────────────── Helpers ────────────────────────────────────────

def _row_to_document(row: asyncpg.Record) -> StoredDocument:
    source = row["source"]
    if isinstance(source, str):
        source = json.loads(source)
    return StoredDocument(
        identity=DocumentIdentity(
            index=row["index_name"],
            doc_type=row["doc_type"],
            doc_id=row["doc_id"],
        ),
        version=row["version"],
        source=source or {},
        routing=row["routing"],
        parent=row["parent"],
        timestamp=row["ts"],
        expires_at=row["expires_at"],
    )
