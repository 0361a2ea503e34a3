"""RAG service: embedding, Qdrant storage, and vector search."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from google.genai import types
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    VectorParams,
)

from contract_risk.clients import RagClients
from contract_risk.models.rag import DocumentChunk, RetrievedMatch

logger = logging.getLogger(__name__)


class RetrievalError(Exception):
    """Raised when the query embedding or the similarity search fails."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


# --- Embedding ---


def _embed_config(clients: RagClients, task_type: str) -> types.EmbedContentConfig:
    return types.EmbedContentConfig(
        output_dimensionality=clients.settings.embedding_dimensions,
        task_type=task_type,
    )


async def embed_query(clients: RagClients, text: str) -> list[float]:
    """Embed a single text string for query-time search."""
    logger.debug(
        "Embedding query (%d chars): %r",
        len(text),
        text[:100] + ("..." if len(text) > 100 else ""),
    )
    response = await clients.genai.aio.models.embed_content(
        model=clients.settings.embedding_model,
        contents=[text],
        config=_embed_config(clients, "RETRIEVAL_QUERY"),
    )
    vector = list(response.embeddings[0].values)
    logger.debug("Embedded query -> %d-dim vector", len(vector))
    return vector


async def embed_documents(clients: RagClients, texts: list[str]) -> list[list[float]]:
    """Embed texts for indexing, in provider-sized batches."""
    settings = clients.settings
    logger.info(
        "Embedding %d texts (model=%s, dims=%d, batch=%d)",
        len(texts),
        settings.embedding_model,
        settings.embedding_dimensions,
        settings.embedding_batch_size,
    )
    vectors: list[list[float]] = []
    for start in range(0, len(texts), settings.embedding_batch_size):
        batch = texts[start : start + settings.embedding_batch_size]
        response = await clients.genai.aio.models.embed_content(
            model=settings.embedding_model,
            contents=batch,
            config=_embed_config(clients, "RETRIEVAL_DOCUMENT"),
        )
        vectors.extend(list(e.values) for e in response.embeddings)
    logger.info("Embedded %d texts -> %d vectors", len(texts), len(vectors))
    return vectors


# --- Qdrant Collection Management ---


async def ensure_collection(clients: RagClients) -> None:
    """Create the Qdrant collection if it doesn't exist."""
    name = clients.settings.qdrant_collection
    if await clients.qdrant.collection_exists(name):
        logger.info("Qdrant collection '%s' already exists", name)
        return
    await clients.qdrant.create_collection(
        collection_name=name,
        vectors_config=VectorParams(
            size=clients.settings.embedding_dimensions,
            distance=Distance.COSINE,
        ),
    )
    for field in (
        "metadata.source_file",
        "metadata.full_path",
        "metadata.doc_id",
    ):
        await clients.qdrant.create_payload_index(
            collection_name=name,
            field_name=field,
            field_schema=PayloadSchemaType.KEYWORD,
        )
    logger.info("Created Qdrant collection '%s'", name)


# --- Upsert ---


def _point_id(chunk: DocumentChunk) -> str:
    """Stable id so re-ingesting the same document overwrites its points."""
    key = f"{chunk.metadata.full_path}:{chunk.metadata.doc_id}"
    return str(uuid.uuid5(uuid.NAMESPACE_URL, key))


async def delete_document(clients: RagClients, full_path: str) -> None:
    """Remove every stored chunk of one source document."""
    await clients.qdrant.delete(
        collection_name=clients.settings.qdrant_collection,
        points_selector=FilterSelector(
            filter=Filter(
                must=[
                    FieldCondition(
                        key="metadata.full_path", match=MatchValue(value=full_path)
                    )
                ]
            )
        ),
    )


async def upsert_chunks(
    clients: RagClients, chunks: list[DocumentChunk], vectors: list[list[float]]
) -> int:
    """Replace the stored chunks of each document in ``chunks``. Returns point count.

    A document's previous points are deleted first, so a revision that yields
    fewer chunks leaves no stale ones behind.
    """
    for full_path in dict.fromkeys(c.metadata.full_path for c in chunks):
        await delete_document(clients, full_path)

    points = [
        PointStruct(
            id=_point_id(chunk),
            vector=vector,
            payload={
                "content": chunk.content,
                "metadata": chunk.metadata.model_dump(mode="json"),
            },
        )
        for chunk, vector in zip(chunks, vectors, strict=True)
    ]
    await clients.qdrant.upsert(
        collection_name=clients.settings.qdrant_collection, points=points
    )
    logger.info(
        "Upserted %d chunks into '%s'", len(points), clients.settings.qdrant_collection
    )
    return len(points)


# --- Search ---


def _build_filter(filter: dict[str, Any]) -> Filter | None:
    """Translate a flat metadata filter into exact-match Qdrant conditions."""
    if not filter:
        return None
    return Filter(
        must=[
            FieldCondition(key=f"metadata.{key}", match=MatchValue(value=value))
            for key, value in filter.items()
        ]
    )


async def match_documents(
    clients: RagClients,
    query_embedding: list[float],
    match_count: int,
    filter: dict[str, Any] | None = None,
) -> list[RetrievedMatch]:
    """Nearest-neighbour search returning matches ordered by similarity."""
    name = clients.settings.qdrant_collection
    if not await clients.qdrant.collection_exists(name):
        logger.warning("Qdrant collection '%s' does not exist; no matches", name)
        return []

    query_filter = _build_filter(filter or {})
    logger.debug(
        "Searching Qdrant collection=%r match_count=%d filter=%s",
        name,
        match_count,
        query_filter,
    )
    results = await clients.qdrant.query_points(
        collection_name=name,
        query=query_embedding,
        query_filter=query_filter,
        limit=match_count,
        with_payload=True,
    )

    matches = []
    for point in results.points:
        payload = point.payload or {}
        matches.append(
            RetrievedMatch(
                content=payload.get("content", ""),
                metadata=payload.get("metadata", {}),
                # Cosine scores can drift marginally outside [0, 1].
                similarity=min(max(point.score, 0.0), 1.0),
            )
        )
    return matches


async def fetch_relevant_docs(
    clients: RagClients,
    query: str,
    k: int = 6,
    threshold: float = 0.65,
) -> list[RetrievedMatch]:
    """Embed ``query`` and return up to ``k`` knowledge base matches.

    ``threshold`` is accepted for interface compatibility but is not applied;
    callers must not assume low-similarity matches were filtered out.
    """
    logger.info(
        "RAG search: k=%d threshold=%.2f (not enforced) query=%r",
        k,
        threshold,
        query[:100],
    )
    try:
        query_vector = await embed_query(clients, query)
    except Exception as e:
        raise RetrievalError(
            code="EMBEDDING_ERROR", message=f"Failed to embed query: {e}"
        ) from e

    try:
        matches = await match_documents(clients, query_vector, match_count=k, filter={})
    except Exception as e:
        raise RetrievalError(
            code="SEARCH_ERROR", message=f"Similarity search failed: {e}"
        ) from e

    logger.info("Qdrant returned %d matches", len(matches))
    for idx, m in enumerate(matches, start=1):
        logger.debug(
            "  Match [%d] similarity=%.3f page=%s source=%r",
            idx,
            m.similarity,
            m.metadata.get("page"),
            m.metadata.get("source_file"),
        )
    return matches


# --- Context formatting ---


def format_chat_context(matches: list[RetrievedMatch]) -> str:
    """Numbered context blocks the chat model can cite as [#1], [#2], ..."""
    blocks = []
    for i, m in enumerate(matches, start=1):
        page = m.metadata.get("page")
        blocks.append(
            f"[#{i} | pg:{page if page is not None else '?'} | sim:{m.similarity:.2f}]"
            f"\n{m.content}"
        )
    return "\n\n".join(blocks)


def format_reference_context(matches: list[RetrievedMatch]) -> str:
    """Reference blocks for the contract analysis prompt; empty string if none."""
    return "\n\n".join(
        f"[Reference {i} | Similarity: {m.similarity:.2f}]\n{m.content}"
        for i, m in enumerate(matches, start=1)
    )
