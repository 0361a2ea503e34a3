"""Knowledge base ingestion endpoint."""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException

from contract_risk.clients import RagClients
from contract_risk.dependencies import get_clients, require_llm_credentials
from contract_risk.models.schemas import ErrorDetail, IngestRequest, IngestResponse
from contract_risk.services.ingestion_service import IngestionError, ingest_document

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["ingest"])

_STATUS_BY_CODE = {"FILE_NOT_FOUND": 404, "NO_TEXT": 422, "PARSE_ERROR": 422}


@router.post("/ingest", response_model=IngestResponse)
async def ingest(
    body: IngestRequest,
    clients: RagClients = Depends(get_clients),
) -> IngestResponse:
    default_path = Path(clients.settings.knowledge_base_path)
    path = Path(body.path) if body.path else default_path
    # Only files inside the knowledge base directory may be ingested over HTTP.
    if not path.resolve().is_relative_to(default_path.resolve().parent):
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(
                code="INVALID_PATH",
                message="Path must be inside the knowledge base directory",
            ).model_dump(),
        )
    require_llm_credentials(clients)
    try:
        inserted = await ingest_document(clients, path)
    except IngestionError as e:
        logger.exception("Ingestion failed for %s", path)
        raise HTTPException(
            status_code=_STATUS_BY_CODE.get(e.code, 500),
            detail=ErrorDetail(code=e.code, message=e.message).model_dump(),
        )
    return IngestResponse(inserted=inserted, source_file=path.name)
