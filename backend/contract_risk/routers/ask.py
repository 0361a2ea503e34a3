"""Question answering endpoints (streaming and non-streaming)."""

from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from contract_risk.clients import RagClients
from contract_risk.dependencies import get_clients, require_llm_credentials
from contract_risk.models.schemas import AskRequest, AskResponse, ErrorDetail
from contract_risk.services.chat_service import (
    AnswerGenerationError,
    generate_answer,
    stream_answer,
    stream_knowledge_base_answer,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["ask"])

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

# Line terminators recognised by the event-stream format
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def _validated_prompt(body: AskRequest) -> str:
    prompt = (body.prompt or "").strip()
    if not prompt:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="EMPTY_PROMPT", message="Empty prompt").model_dump(),
        )
    return prompt


def sse_frame(fragment: str) -> str:
    """Encode one fragment as a server-sent event (one data line per text line)."""
    lines = _LINE_BREAK.split(fragment)
    return "".join(f"data: {line}\n" for line in lines) + "\n"


async def _event_stream(fragments: AsyncIterator[str]) -> AsyncIterator[str]:
    async for fragment in fragments:
        yield sse_frame(fragment)


@router.post("/ask")
async def ask(
    body: AskRequest,
    clients: RagClients = Depends(get_clients),
) -> StreamingResponse:
    prompt = _validated_prompt(body)
    require_llm_credentials(clients)
    logger.info("Streaming answer for prompt %r", prompt[:100])
    return StreamingResponse(
        _event_stream(stream_answer(clients, prompt, body.contract_content)),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/chat")
async def chat(
    body: AskRequest,
    clients: RagClients = Depends(get_clients),
) -> StreamingResponse:
    prompt = _validated_prompt(body)
    require_llm_credentials(clients)
    logger.info("Streaming knowledge base answer for prompt %r", prompt[:100])
    return StreamingResponse(
        _event_stream(stream_knowledge_base_answer(clients, prompt)),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/ask-simple", response_model=AskResponse)
async def ask_simple(
    body: AskRequest,
    clients: RagClients = Depends(get_clients),
) -> AskResponse:
    prompt = _validated_prompt(body)
    require_llm_credentials(clients)
    try:
        answer, question_data = await generate_answer(
            clients, prompt, body.contract_content
        )
    except AnswerGenerationError as e:
        logger.exception("Answer generation failed")
        raise HTTPException(
            status_code=500,
            detail=ErrorDetail(code=e.code, message=e.message).model_dump(),
        )
    return AskResponse(answer=answer, question_data=question_data)
