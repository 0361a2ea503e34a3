"""Pydantic models for RAG: knowledge base chunks and retrieval matches."""

from __future__ import annotations

import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChunkMetadata(BaseModel):
    """Provenance attached to every stored chunk."""

    model_config = ConfigDict(frozen=True)

    source_file: str
    full_path: str
    page: int | None = None
    chunk_index: int
    doc_id: str
    ingested_at: datetime.datetime


class DocumentChunk(BaseModel):
    """A slice of a knowledge base document, the unit stored in the vector store."""

    model_config = ConfigDict(frozen=True)

    content: str
    metadata: ChunkMetadata


class RetrievedMatch(BaseModel):
    """A similarity search hit."""

    content: str
    metadata: dict[str, Any] = {}
    similarity: float = Field(ge=0.0, le=1.0)
