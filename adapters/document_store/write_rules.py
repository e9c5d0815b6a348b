"""
Reguły zapisu wspólne dla adapterów DocumentStore.

Wersjonowanie:
  internal: podana wersja musi być równa bieżącej; nowa = bieżąca + 1 (albo 1).
            Wersja 0 oznacza brak sprawdzania (jak brak wersji).
  external: wersja wymagana, >= 1 i większa od bieżącej; nowa = podana.

Timestamp: epoch millis albo ISO-8601.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from contracts import DocumentIdentity, VersionType, WriteOptions
from errors import InvalidVersionError, StoreError, VersionConflictError


def resolve_version(
    identity: DocumentIdentity,
    current: Optional[int],
    options: WriteOptions,
) -> int:
    """
    Returns the version to assign to the new write.
    current is None when no live document exists under identity.
    Raises before anything is written, so a returned version is always >= 1.
    """
    doc_id = identity.doc_id or ""

    if options.version_type == VersionType.EXTERNAL:
        if options.version is None:
            raise InvalidVersionError("version type [external] requires a version")
        if options.version < 1:
            raise InvalidVersionError(f"illegal version value [{options.version}] for version type [external]")
        if current is not None and current >= options.version:
            raise VersionConflictError(
                identity.index, identity.doc_type, doc_id, current, options.version
            )
        return options.version

    if options.version is not None and options.version < 0:
        raise InvalidVersionError(f"illegal version value [{options.version}]")
    if options.version and options.version != current:
        raise VersionConflictError(
            identity.index, identity.doc_type, doc_id, current, options.version
        )
    return (current or 0) + 1


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Accepts epoch millis or ISO-8601; naive datetimes are taken as UTC."""
    if value is None:
        return None
    if value.isdigit():
        return datetime.fromtimestamp(int(value) / 1000.0, tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise StoreError(f"failed to parse timestamp [{value}]", status=400) from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def expires_at(now: datetime, ttl_ms: Optional[int]) -> Optional[datetime]:
    if ttl_ms is None:
        return None
    return now + timedelta(milliseconds=ttl_ms)
