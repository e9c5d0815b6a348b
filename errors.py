"""
errors.py — Hierarchia wyjątków zgłaszanych przez adaptery Matcher i DocumentStore.
Każdy wyjątek niesie status HTTP, który trafia do Outcome.
"""
from __future__ import annotations

from http import HTTPStatus
from typing import Optional


class PercosertError(Exception):
    status: int = HTTPStatus.INTERNAL_SERVER_ERROR.value

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        if status is not None:
            self.status = status


class InvalidWriteModeError(PercosertError):
    status = HTTPStatus.BAD_REQUEST.value

    def __init__(self, mode: str) -> None:
        super().__init__(
            f"opType [{mode}] not allowed, either [percosert] or [index] are allowed"
        )
        self.mode = mode


class IndexMissingError(PercosertError):
    status = HTTPStatus.NOT_FOUND.value

    def __init__(self, index: str) -> None:
        super().__init__(f"[{index}] missing")
        self.index = index


# ─────────────────────────── Matcher ─────────────────────────────────────

class MatchError(PercosertError):
    pass


class MatcherUnavailableError(MatchError):
    status = HTTPStatus.SERVICE_UNAVAILABLE.value


class MalformedQueryError(MatchError):
    status = HTTPStatus.BAD_REQUEST.value


# ─────────────────────────── DocumentStore ───────────────────────────────

class StoreError(PercosertError):
    pass


class VersionConflictError(StoreError):
    status = HTTPStatus.CONFLICT.value

    def __init__(
        self,
        index: str,
        doc_type: str,
        doc_id: str,
        current: Optional[int],
        provided: Optional[int],
    ) -> None:
        super().__init__(
            f"[{doc_type}][{doc_id}]: version conflict, "
            f"current [{current if current is not None else -1}], provided [{provided}]"
        )
        self.index = index
        self.current = current
        self.provided = provided


class InvalidVersionError(StoreError):
    status = HTTPStatus.BAD_REQUEST.value


class StoreUnavailableError(StoreError):
    status = HTTPStatus.SERVICE_UNAVAILABLE.value
