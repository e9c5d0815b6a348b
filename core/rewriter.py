"""
DocumentRewriter — buduje dokument do zapisu z dokumentu klienta i wyniku percolacji.
"""
from __future__ import annotations

from typing import Any, Iterable

from contracts import MATCHES_FIELD, QUERY_FIELD


def rewrite(source: dict[str, Any], matches: Iterable[str]) -> dict[str, Any]:
    """
    Copies every field except the reserved query field and sets the
    reserved matches field to the match ids, even when there are none.
    A caller-supplied value under the matches field is overwritten.
    The input mapping is never modified.
    """
    rewritten = {k: v for k, v in source.items() if k != QUERY_FIELD}
    rewritten[MATCHES_FIELD] = list(matches)
    return rewritten
