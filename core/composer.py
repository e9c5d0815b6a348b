"""
ResponseComposer — składa Outcome z wyniku zapisu (albo wyjątku) i wyniku percolacji.
"""
from __future__ import annotations

from http import HTTPStatus
from typing import Iterable

from contracts import ErrorKind, Outcome, OutcomeError, StoreOutcome
from errors import PercosertError


def compose(store_outcome: StoreOutcome, matches: Iterable[str]) -> Outcome:
    """
    Success outcome. Echoed matches from the store win over the match result.
    Raises ValueError if store_outcome does not describe a persisted document.
    """
    if not store_outcome.doc_id:
        raise ValueError("store outcome without document id")
    if store_outcome.version is None or store_outcome.version < 1:
        raise ValueError(f"store outcome with invalid version: {store_outcome.version!r}")

    echoed = store_outcome.matches
    return Outcome(
        ok=True,
        index=store_outcome.index,
        doc_type=store_outcome.doc_type,
        doc_id=store_outcome.doc_id,
        version=store_outcome.version,
        matches=list(echoed) if echoed is not None else list(matches),
    )


def compose_error(kind: ErrorKind, exc: BaseException) -> Outcome:
    status = exc.status if isinstance(exc, PercosertError) else HTTPStatus.INTERNAL_SERVER_ERROR.value
    return Outcome(
        ok=False,
        error=OutcomeError(
            kind=kind,
            reason=type(exc).__name__,
            message=str(exc) or type(exc).__name__,
            status=status,
        ),
    )
