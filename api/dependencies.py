"""
dependencies.py — FastAPI Dependency Injection.
Każda zależność zwraca odpowiedni obiekt przez Request.app.state.
"""
from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Query, Request

from api.params import parse_bool, parse_time_ms, parse_version
from contracts import ConsistencyLevel, ReplicationType, SubmitOptions, VersionType, WriteMode
from core.percosert import PercosertService
from ports.document_store import DocumentStore


def get_service(request: Request) -> PercosertService:
    return request.app.state.service


def get_document_store(request: Request) -> DocumentStore:
    return request.app.state.document_store


def get_submit_options(
    routing: Optional[str] = None,
    parent: Optional[str] = None,
    timestamp: Optional[str] = None,
    ttl: Optional[str] = None,
    timeout: Optional[str] = None,
    refresh: Optional[str] = None,
    version: Optional[str] = None,
    version_type: Optional[str] = None,
    op_type: str = Query(default=WriteMode.PERCOSERT.value),
    replication: Optional[str] = None,
    consistency: Optional[str] = None,
    percolate: Optional[str] = None,
    prefer_local: Optional[str] = None,
) -> SubmitOptions:
    """Parses write parameters up front; any malformed value is a 400 before backends are touched."""
    try:
        return SubmitOptions(
            routing=routing,
            parent=parent,
            timestamp=timestamp,
            ttl_ms=parse_time_ms(ttl, "ttl"),
            timeout_ms=parse_time_ms(timeout, "timeout"),
            refresh=parse_bool(refresh),
            version=parse_version(version),
            version_type=VersionType(version_type) if version_type else VersionType.INTERNAL,
            replication=ReplicationType(replication) if replication else None,
            consistency=ConsistencyLevel(consistency) if consistency else None,
            write_mode=op_type,
            percolate=percolate,
            prefer_local=parse_bool(prefer_local, default=True),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
