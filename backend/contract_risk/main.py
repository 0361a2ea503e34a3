"""FastAPI application entry point."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from rich.logging import RichHandler

from contract_risk.clients import RagClients, build_clients
from contract_risk.config import settings
from contract_risk.dependencies import get_clients, require_llm_credentials
from contract_risk.models.schemas import ErrorDetail, LlmHealthResponse
from contract_risk.routers.analysis import router as analysis_router
from contract_risk.routers.ask import router as ask_router
from contract_risk.routers.ingest import router as ingest_router
from contract_risk.services import llm

logging.basicConfig(
    level=logging.INFO,
    format="%(name)s - %(message)s",
    datefmt="%H:%M:%S",
    handlers=[RichHandler(rich_tracebacks=True, markup=False)],
    force=True,
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
# Our app loggers: show DEBUG when debug=True, keep third-party libs at INFO
if settings.debug:
    logging.getLogger("contract_risk").setLevel(logging.DEBUG)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    app.state.clients = build_clients(settings)
    if not settings.llm_configured:
        logger.warning(
            "Google AI credentials not found. Set GOOGLE_API_KEY or USE_VERTEXAI=true."
        )
    yield
    await app.state.clients.close()


app = FastAPI(
    title="Contract Risk Assistant",
    description="Retrieval-augmented contract Q&A and risk analysis",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_credentials=True,
    allow_headers=["*"],
)

app.include_router(ask_router)
app.include_router(analysis_router)
app.include_router(ingest_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/health/llm", response_model=LlmHealthResponse)
async def llm_health_check(
    clients: RagClients = Depends(get_clients),
) -> LlmHealthResponse:
    """Round-trip a tiny prompt through the chat model."""
    require_llm_credentials(clients)
    try:
        text = await llm.complete(
            clients,
            llm.Prompt(
                system="You are a connectivity check.",
                user="Say 'Hello from Gemini!' in one sentence.",
            ),
            temperature=0.1,
            max_output_tokens=100,
        )
    except Exception as e:
        logger.exception("LLM connectivity check failed")
        raise HTTPException(
            status_code=500,
            detail=ErrorDetail(
                code="LLM_ERROR", message=f"Gemini API test failed: {e}"
            ).model_dump(),
        )
    return LlmHealthResponse(
        success=True,
        message="Gemini API is working!",
        response=text,
        model=clients.settings.chat_model,
    )
