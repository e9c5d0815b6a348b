from __future__ import annotations

from datetime import datetime, timezone

import pytest

from adapters.document_store.write_rules import expires_at, parse_timestamp, resolve_version
from contracts import DocumentIdentity, VersionType, WriteOptions
from errors import InvalidVersionError, StoreError, VersionConflictError

_IDENT = DocumentIdentity(index="logs", doc_type="entry", doc_id="1")


def test_internal_versioning_increments():
    assert resolve_version(_IDENT, None, WriteOptions()) == 1
    assert resolve_version(_IDENT, 4, WriteOptions()) == 5


def test_internal_versioning_requires_matching_version():
    assert resolve_version(_IDENT, 3, WriteOptions(version=3)) == 4
    with pytest.raises(VersionConflictError):
        resolve_version(_IDENT, 3, WriteOptions(version=2))


def test_internal_version_on_missing_document_conflicts():
    with pytest.raises(VersionConflictError):
        resolve_version(_IDENT, None, WriteOptions(version=1))


def test_internal_version_zero_skips_the_check():
    assert resolve_version(_IDENT, None, WriteOptions(version=0)) == 1
    assert resolve_version(_IDENT, 7, WriteOptions(version=0)) == 8


def test_external_versioning_uses_given_version():
    opts = WriteOptions(version=10, version_type=VersionType.EXTERNAL)

    assert resolve_version(_IDENT, None, opts) == 10
    assert resolve_version(_IDENT, 9, opts) == 10
    with pytest.raises(VersionConflictError):
        resolve_version(_IDENT, 10, opts)


def test_external_versioning_requires_version():
    with pytest.raises(InvalidVersionError):
        resolve_version(_IDENT, None, WriteOptions(version_type=VersionType.EXTERNAL))


def test_external_versioning_rejects_version_zero():
    with pytest.raises(InvalidVersionError) as exc_info:
        resolve_version(_IDENT, None, WriteOptions(version=0, version_type=VersionType.EXTERNAL))
    assert exc_info.value.status == 400


def test_parse_timestamp_accepts_millis_and_iso():
    assert parse_timestamp(None) is None
    assert parse_timestamp("0") == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp("2024-05-01T12:00:00") == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)


def test_parse_timestamp_rejects_garbage():
    with pytest.raises(StoreError) as exc_info:
        parse_timestamp("yesterday")
    assert exc_info.value.status == 400


def test_expires_at_only_with_ttl():
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    assert expires_at(now, None) is None
    assert expires_at(now, 1500) == datetime(2024, 1, 1, 0, 0, 1, 500_000, tzinfo=timezone.utc)
