"""
contracts.py — Jedyne źródło prawdy dla wszystkich typów danych w Percosert.
Wszystkie moduły importują WYŁĄCZNIE stąd.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from http import HTTPStatus
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Zarezerwowane pola w body dokumentu
QUERY_FIELD = "query"          # predykat dla percolatora, nigdy nie zapisywany
MATCHES_FIELD = "percosert"    # lista dopasowanych query_id, zawsze zapisywana

DEFAULT_WRITE_TIMEOUT_MS = 60_000


# ─────────────────────────── Helpers ─────────────────────────────────────

def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


# ─────────────────────────── Enums ───────────────────────────────────────

class WriteMode(str, Enum):
    PERCOSERT = "percosert"   # tryb własny operacji złożonej
    INDEX = "index"           # insert-or-overwrite


ALLOWED_WRITE_MODES = frozenset(m.value for m in WriteMode)


class VersionType(str, Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"


class ReplicationType(str, Enum):
    SYNC = "sync"
    ASYNC = "async"
    DEFAULT = "default"


class ConsistencyLevel(str, Enum):
    ONE = "one"
    QUORUM = "quorum"
    ALL = "all"
    DEFAULT = "default"


class ErrorKind(str, Enum):
    INVALID_WRITE_MODE = "InvalidWriteMode"
    MATCH_FAILURE = "MatchFailure"
    STORE_FAILURE = "StoreFailure"


# ─────────────────────────── Submission ──────────────────────────────────

class DocumentIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: str
    doc_type: str
    doc_id: Optional[str] = None


class SubmitOptions(BaseModel):
    """Parametry zapisu podane przez klienta (przekazywane do store bez zmian)."""
    model_config = ConfigDict(frozen=True)

    routing: Optional[str] = None
    parent: Optional[str] = None
    timestamp: Optional[str] = None
    ttl_ms: Optional[int] = None        # None = brak ttl, nie ttl=0
    timeout_ms: Optional[int] = None    # None = domyślny timeout serwisu
    refresh: Optional[bool] = None      # None = domyślne zachowanie store
    version: Optional[int] = None
    version_type: VersionType = VersionType.INTERNAL
    replication: Optional[ReplicationType] = None
    consistency: Optional[ConsistencyLevel] = None
    write_mode: str = WriteMode.PERCOSERT.value
    percolate: Optional[str] = None
    prefer_local: bool = True


class SubmittedDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    identity: DocumentIdentity
    source: dict[str, Any]
    options: SubmitOptions = Field(default_factory=SubmitOptions)

    @property
    def query(self) -> Any:
        return self.source.get(QUERY_FIELD)

    def doc_without_query(self) -> dict[str, Any]:
        return {k: v for k, v in self.source.items() if k != QUERY_FIELD}


MatchResult = list[str]


# ─────────────────────────── DocumentStore ───────────────────────────────

class WriteOptions(BaseModel):
    routing: Optional[str] = None
    parent: Optional[str] = None
    timestamp: Optional[str] = None
    ttl_ms: Optional[int] = None
    timeout_ms: int = DEFAULT_WRITE_TIMEOUT_MS
    refresh: Optional[bool] = None
    version: Optional[int] = None
    version_type: VersionType = VersionType.INTERNAL
    replication: Optional[ReplicationType] = None
    consistency: Optional[ConsistencyLevel] = None
    percolate: Optional[str] = None


class StoreOutcome(BaseModel):
    index: str
    doc_type: str
    doc_id: str
    version: int
    matches: Optional[list[str]] = None  # echo dla klienta, opcjonalne


class StoredDocument(BaseModel):
    identity: DocumentIdentity
    version: int
    source: dict[str, Any]
    routing: Optional[str] = None
    parent: Optional[str] = None
    timestamp: datetime = Field(default_factory=_now)
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or _now()) >= self.expires_at


# ─────────────────────────── Outcome ─────────────────────────────────────

class OutcomeError(BaseModel):
    kind: ErrorKind
    reason: str                 # nazwa klasy wyjątku, np. "VersionConflictError"
    message: str
    status: int = HTTPStatus.INTERNAL_SERVER_ERROR.value


class Outcome(BaseModel):
    """Jednolity wynik jednego wywołania submit (sukces albo błąd)."""

    ok: bool
    index: Optional[str] = None
    doc_type: Optional[str] = None
    doc_id: Optional[str] = None
    version: Optional[int] = None
    matches: Optional[list[str]] = None
    error: Optional[OutcomeError] = None

    @field_validator("matches")
    @classmethod
    def _copy_matches(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return list(v) if v is not None else None

    @model_validator(mode="after")
    def _error_required_on_failure(self) -> "Outcome":
        if not self.ok and self.error is None:
            raise ValueError("failed outcome requires an error")
        return self

    def _failure(self) -> OutcomeError:
        if self.error is None:
            raise ValueError("outcome carries no error")
        return self.error

    @property
    def status(self) -> HTTPStatus:
        if not self.ok:
            return HTTPStatus(self._failure().status)
        if self.version == 1:
            return HTTPStatus.CREATED
        return HTTPStatus.OK

    def to_response(self) -> dict[str, Any]:
        if not self.ok:
            error = self._failure()
            return {
                "ok": False,
                "error": {
                    "kind": error.kind.value,
                    "reason": error.reason,
                    "message": error.message,
                },
                "status": error.status,
            }
        return {
            "ok": True,
            "_index": self.index,
            "_type": self.doc_type,
            "_id": self.doc_id,
            "_version": self.version,
            "matches": list(self.matches or []),
        }
