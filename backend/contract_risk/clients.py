"""External service handles threaded explicitly through every service call."""

from __future__ import annotations

import logging

from google import genai
from qdrant_client import AsyncQdrantClient

from contract_risk.config import Settings

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when required credentials are missing."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


def _qdrant_kwargs(settings: Settings) -> dict:
    """Build kwargs for Qdrant client, including api_key if set."""
    kwargs: dict = {"url": settings.qdrant_url}
    if settings.qdrant_api_key:
        kwargs["api_key"] = settings.qdrant_api_key
    return kwargs


def create_genai_client(settings: Settings) -> genai.Client:
    """Create a Google GenAI client from settings.

    The same client exposes sync (client.models) and async (client.aio.models)
    interfaces; services only use the async one.
    """
    if settings.google_api_key:
        return genai.Client(api_key=settings.google_api_key)
    if settings.use_vertexai:
        return genai.Client(
            vertexai=True,
            project=settings.gcp_project_id,
            location=settings.gcp_location,
        )
    raise ConfigurationError(
        code="CONFIG_ERROR",
        message=(
            "Google AI credentials not configured. Set GOOGLE_API_KEY "
            "or USE_VERTEXAI=true."
        ),
    )


class RagClients:
    """Settings plus the embedding/LLM and vector store clients for one process.

    The GenAI client is created on first use so that the application can start
    (and report a configuration error per request) without credentials.
    """

    def __init__(
        self,
        settings: Settings,
        qdrant: AsyncQdrantClient,
        genai_client: genai.Client | None = None,
    ) -> None:
        self.settings = settings
        self.qdrant = qdrant
        self._genai = genai_client

    @property
    def genai(self) -> genai.Client:
        if self._genai is None:
            self._genai = create_genai_client(self.settings)
        return self._genai

    async def close(self) -> None:
        await self.qdrant.close()


def build_clients(settings: Settings) -> RagClients:
    """Create the client container for the given settings."""
    logger.info(
        "Building clients: qdrant=%s collection=%s chat_model=%s",
        settings.qdrant_url,
        settings.qdrant_collection,
        settings.chat_model,
    )
    return RagClients(
        settings=settings,
        qdrant=AsyncQdrantClient(**_qdrant_kwargs(settings)),
    )
