"""
schemas.py — Request/Response modele FastAPI.
Oddzielone od contracts.py żeby API mogło ewoluować niezależnie.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


# ─────────────────────────── /_percosert ─────────────────────────

class PercosertResponse(BaseModel):
    ok: bool
    index: Optional[str] = Field(default=None, serialization_alias="_index")
    doc_type: Optional[str] = Field(default=None, serialization_alias="_type")
    doc_id: Optional[str] = Field(default=None, serialization_alias="_id")
    version: Optional[int] = Field(default=None, serialization_alias="_version")
    matches: Optional[list[str]] = None


class PercosertErrorBody(BaseModel):
    kind: str           # InvalidWriteMode | MatchFailure | StoreFailure
    reason: str
    message: str


class PercosertErrorResponse(BaseModel):
    ok: bool = False
    error: PercosertErrorBody
    status: int


# ─────────────────────────── GET /{index}/{type}/{id} ────────────

class DocumentResponse(BaseModel):
    index: str = Field(serialization_alias="_index")
    doc_type: str = Field(serialization_alias="_type")
    doc_id: str = Field(serialization_alias="_id")
    version: int = Field(serialization_alias="_version")
    source: dict[str, Any] = Field(serialization_alias="_source")
    routing: Optional[str] = Field(default=None, serialization_alias="_routing")
    parent: Optional[str] = Field(default=None, serialization_alias="_parent")
    timestamp: datetime = Field(serialization_alias="_timestamp")
    exists: bool = True


# ─────────────────────────── /health ─────────────────────────────

class HealthResponse(BaseModel):
    status: str
    store: str
    matcher: str
    version: str
