"""Contract risk analysis endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from contract_risk.clients import RagClients
from contract_risk.dependencies import get_clients, require_llm_credentials
from contract_risk.models.schemas import AnalyzeRequest, AnalyzeResponse, ErrorDetail
from contract_risk.services.contract_analyzer import (
    analyze_contract,
    generate_risk_summary,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["analysis"])


@router.post("/analyze-contract", response_model=AnalyzeResponse)
async def analyze(
    body: AnalyzeRequest,
    clients: RagClients = Depends(get_clients),
) -> AnalyzeResponse:
    contract_content = (body.contract_content or "").strip()
    contract_id = (body.contract_id or "").strip()
    if not contract_content or not contract_id:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(
                code="MISSING_FIELDS",
                message="Missing required fields: contractContent and contractId",
            ).model_dump(),
        )
    require_llm_credentials(clients)

    logger.info("Analyzing contract %s", body.contract_id)
    analysis = await analyze_contract(clients, body.contract_content, body.contract_id)
    return AnalyzeResponse(
        analysis=analysis,
        summary=generate_risk_summary(analysis),
        contract_id=body.contract_id,
    )
