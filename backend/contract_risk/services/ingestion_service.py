"""Knowledge base ingestion: PDF -> chunks -> embeddings -> vector store."""

from __future__ import annotations

import logging
from pathlib import Path

from contract_risk.clients import RagClients
from contract_risk.services.document_processor import parse_and_chunk_pdf
from contract_risk.services.rag_service import (
    embed_documents,
    ensure_collection,
    upsert_chunks,
)

logger = logging.getLogger(__name__)


class IngestionError(Exception):
    """Raised when a document cannot be ingested."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


async def ingest_document(clients: RagClients, path: Path | None = None) -> int:
    """Ingest one PDF into the vector store. Returns the number of chunks inserted.

    Not resumable: a failure after some embeddings were produced leaves nothing
    written, while a failure inside the upsert inherits whatever atomicity the
    vector store provides.
    """
    settings = clients.settings
    path = Path(path or settings.knowledge_base_path)
    if not path.is_file():
        raise IngestionError(code="FILE_NOT_FOUND", message=f"File not found: {path}")

    logger.info("Ingesting %s", path)
    try:
        chunks = parse_and_chunk_pdf(
            path,
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            separators=settings.chunk_separators,
        )
    except Exception as e:
        raise IngestionError(
            code="PARSE_ERROR", message=f"Failed to read {path.name}: {e}"
        ) from e

    if not chunks:
        raise IngestionError(
            code="NO_TEXT", message=f"No extractable text in {path.name}"
        )
    logger.info("Chunked %s -> %d chunks", path.name, len(chunks))

    try:
        vectors = await embed_documents(clients, [c.content for c in chunks])
        await ensure_collection(clients)
        inserted = await upsert_chunks(clients, chunks, vectors)
    except Exception as e:
        raise IngestionError(
            code="INGESTION_ERROR", message=f"Failed to ingest {path.name}: {e}"
        ) from e

    logger.info("Ingested %d chunks from %s", inserted, path.name)
    return inserted
