"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from fastapi import HTTPException, Request

from contract_risk.clients import RagClients
from contract_risk.models.schemas import ErrorDetail


def get_clients(request: Request) -> RagClients:
    """Client container created in the application lifespan."""
    return request.app.state.clients


def require_llm_credentials(clients: RagClients) -> None:
    """Fail fast with 500 CONFIG_ERROR before any external call is made."""
    if not clients.settings.llm_configured:
        raise HTTPException(
            status_code=500,
            detail=ErrorDetail(
                code="CONFIG_ERROR",
                message=(
                    "Google AI credentials not configured. Set GOOGLE_API_KEY "
                    "or USE_VERTEXAI=true."
                ),
            ).model_dump(),
        )
