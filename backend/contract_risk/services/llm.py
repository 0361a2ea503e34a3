"""Gemini chat invocation: one-shot and streaming completions."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from google.genai import types
from pydantic import BaseModel

from contract_risk.clients import RagClients

logger = logging.getLogger(__name__)


class Prompt(BaseModel):
    """A two-message prompt: system instructions plus one user turn."""

    system: str
    user: str


def _preview(text: str, limit: int = 100) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def _config(
    prompt: Prompt, temperature: float, max_output_tokens: int
) -> types.GenerateContentConfig:
    return types.GenerateContentConfig(
        system_instruction=prompt.system,
        temperature=temperature,
        max_output_tokens=max_output_tokens,
    )


async def complete(
    clients: RagClients,
    prompt: Prompt,
    *,
    temperature: float,
    max_output_tokens: int,
) -> str:
    """Return the full completion text for ``prompt``."""
    model = clients.settings.chat_model
    logger.debug(
        "LLM call: model=%s temperature=%.1f max_tokens=%d user=%r",
        model,
        temperature,
        max_output_tokens,
        _preview(prompt.user),
    )
    response = await clients.genai.aio.models.generate_content(
        model=model,
        contents=prompt.user,
        config=_config(prompt, temperature, max_output_tokens),
    )
    text = response.text or ""
    logger.debug("LLM response (%d chars): %r", len(text), _preview(text))
    return text


async def stream(
    clients: RagClients,
    prompt: Prompt,
    *,
    temperature: float,
    max_output_tokens: int,
) -> AsyncIterator[str]:
    """Yield non-empty text deltas as the model produces them."""
    model = clients.settings.chat_model
    logger.debug("LLM stream: model=%s user=%r", model, _preview(prompt.user))
    chunks = await clients.genai.aio.models.generate_content_stream(
        model=model,
        contents=prompt.user,
        config=_config(prompt, temperature, max_output_tokens),
    )
    count = 0
    async for chunk in chunks:
        if chunk.text:
            count += 1
            yield chunk.text
    logger.debug("LLM stream finished after %d deltas", count)
