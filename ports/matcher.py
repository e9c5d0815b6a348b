"""
Port: Matcher
Odpowiedzialność: percolacja — dopasowanie dokumentu do zarejestrowanych zapytań.
"""
from typing import Any, Optional, Protocol, runtime_checkable

from contracts import MatchResult


@runtime_checkable
class Matcher(Protocol):
    async def match(
        self,
        index: str,
        doc_type: str,
        doc: dict[str, Any],
        query: Optional[Any] = None,
        *,
        prefer_local: bool = True,
    ) -> MatchResult:
        """
        Evaluates doc against the queries registered for index.
        query, if given, restricts which registered queries are considered.
        Returns the ids of matching queries in backend order; an empty list
        is a valid result.
        Raises MatchError (or a subclass) on failure.
        """
        ...

    async def close(self) -> None:
        ...
