"""Test fixtures and configuration."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from qdrant_client import AsyncQdrantClient

from contract_risk.clients import RagClients
from contract_risk.config import Settings
from contract_risk.dependencies import get_clients
from contract_risk.main import app

EMBEDDING_DIMS = 8


def _embed_response(num_texts: int, dim: int = EMBEDDING_DIMS) -> MagicMock:
    """Mock matching the google.genai embed_content response shape."""
    mock_resp = MagicMock()
    embeddings = []
    for _ in range(num_texts):
        emb = MagicMock()
        emb.values = [0.1] * dim
        embeddings.append(emb)
    mock_resp.embeddings = embeddings
    return mock_resp


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        google_api_key="test-key",
        use_vertexai=False,
        embedding_dimensions=EMBEDDING_DIMS,
        embedding_batch_size=2,
        qdrant_collection="test_knowledge_base",
        knowledge_base_path=str(tmp_path / "Knowledge_Base.pdf"),
        chunk_size=200,
        chunk_overlap=20,
    )


@pytest.fixture
async def in_memory_qdrant() -> AsyncIterator[AsyncQdrantClient]:
    """Use in-memory Qdrant for tests."""
    client = AsyncQdrantClient(":memory:")
    yield client
    await client.close()


@pytest.fixture
def mock_genai() -> MagicMock:
    """Mock the GenAI client so no real API calls are made.

    Embeddings default to a constant vector per input text; tests configure
    generate_content / generate_content_stream as needed.
    """
    mock_client = MagicMock()
    mock_client.aio.models.embed_content = AsyncMock(
        side_effect=lambda **kwargs: _embed_response(len(kwargs["contents"]))
    )
    mock_client.aio.models.generate_content = AsyncMock()
    mock_client.aio.models.generate_content_stream = AsyncMock()
    return mock_client


@pytest.fixture
def clients(
    test_settings: Settings,
    in_memory_qdrant: AsyncQdrantClient,
    mock_genai: MagicMock,
) -> RagClients:
    return RagClients(
        settings=test_settings, qdrant=in_memory_qdrant, genai_client=mock_genai
    )


@pytest.fixture
async def client(clients: RagClients) -> AsyncIterator[AsyncClient]:
    app.dependency_overrides[get_clients] = lambda: clients
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
