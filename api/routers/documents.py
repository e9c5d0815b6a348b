"""
Router: GET /{index}/{type}/{id}
Odczyt zapisanego dokumentu (razem z polem "percosert").
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_document_store
from api.schemas import DocumentResponse
from contracts import DocumentIdentity

router = APIRouter(tags=["documents"])


@router.get("/{index}/{doc_type}/{doc_id}", response_model=DocumentResponse)
async def get_document(
    index: str,
    doc_type: str,
    doc_id: str,
    store=Depends(get_document_store),
) -> DocumentResponse:
    # KeyError → 404 przez globalny handler w api/main.py
    doc = await store.get(DocumentIdentity(index=index, doc_type=doc_type, doc_id=doc_id))
    return DocumentResponse(
        index=doc.identity.index,
        doc_type=doc.identity.doc_type,
        doc_id=doc.identity.doc_id or doc_id,
        version=doc.version,
        source=doc.source,
        routing=doc.routing,
        parent=doc.parent,
        timestamp=doc.timestamp,
    )
