"""
Port: DocumentStore
Odpowiedzialność: trwały zapis dokumentów z wersjonowaniem.
"""
from typing import Any, Protocol, runtime_checkable

from contracts import DocumentIdentity, StoredDocument, StoreOutcome, WriteOptions


@runtime_checkable
class DocumentStore(Protocol):
    async def write(
        self,
        identity: DocumentIdentity,
        source: dict[str, Any],
        options: WriteOptions,
    ) -> StoreOutcome:
        """
        Persists source under identity. A missing doc_id is generated.
        Honors options.version / version_type; an existing document is overwritten.
        Returns StoreOutcome with the assigned id and version.
        Raises StoreError (or a subclass) on failure, e.g. VersionConflictError.
        """
        ...

    async def get(self, identity: DocumentIdentity) -> StoredDocument:
        """Returns the stored document. Raises KeyError if not found or expired."""
        ...

    async def close(self) -> None:
        ...
