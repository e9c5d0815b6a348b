"""
Router: PUT /{index}/{type}/_percosert, PUT /{index}/{type}/{id}/_percosert

Percolate dokumentu, potem zapis z listą dopasowanych zapytań w polu "percosert".
Status: 201 gdy _version == 1, 200 przy nadpisaniu, status błędu w przeciwnym razie.
"""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_service, get_submit_options
from api.schemas import PercosertErrorResponse, PercosertResponse
from contracts import DocumentIdentity, SubmitOptions, SubmittedDocument
from core.percosert import PercosertService

router = APIRouter(tags=["percosert"])

_RESPONSES: dict[int | str, dict[str, Any]] = {
    201: {"model": PercosertResponse, "description": "Pierwsza wersja dokumentu"},
    400: {"model": PercosertErrorResponse, "description": "Zły op_type, parametr albo zapytanie"},
    404: {"model": PercosertErrorResponse, "description": "Brak indeksu"},
    409: {"model": PercosertErrorResponse, "description": "Konflikt wersji"},
    500: {"model": PercosertErrorResponse},
    502: {"model": PercosertErrorResponse, "description": "Błąd percolatora"},
    503: {"model": PercosertErrorResponse, "description": "Percolator albo store niedostępny"},
}


async def _handle(
    service: PercosertService,
    index: str,
    doc_type: str,
    doc_id: Optional[str],
    source: dict[str, Any],
    options: SubmitOptions,
) -> JSONResponse:
    doc = SubmittedDocument(
        identity=DocumentIdentity(index=index, doc_type=doc_type, doc_id=doc_id),
        source=source,
        options=options,
    )
    outcome = await service.submit(doc)
    return JSONResponse(status_code=outcome.status.value, content=outcome.to_response())


@router.put("/{index}/{doc_type}/_percosert", response_model=PercosertResponse, responses=_RESPONSES)
async def percosert_auto_id(
    index: str,
    doc_type: str,
    source: dict[str, Any] = Body(...),
    options: SubmitOptions = Depends(get_submit_options),
    service: PercosertService = Depends(get_service),
) -> JSONResponse:
    return await _handle(service, index, doc_type, None, source, options)


@router.put("/{index}/{doc_type}/{doc_id}/_percosert", response_model=PercosertResponse, responses=_RESPONSES)
async def percosert(
    index: str,
    doc_type: str,
    doc_id: str,
    source: dict[str, Any] = Body(...),
    options: SubmitOptions = Depends(get_submit_options),
    service: PercosertService = Depends(get_service),
) -> JSONResponse:
    return await _handle(service, index, doc_type, doc_id, source, options)
