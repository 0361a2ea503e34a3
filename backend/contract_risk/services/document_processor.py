"""PDF loading and overlapping chunking for the knowledge base."""

from __future__ import annotations

import datetime
import re
from pathlib import Path

from langchain_text_splitters import RecursiveCharacterTextSplitter
from pypdf import PdfReader

from contract_risk.models.rag import ChunkMetadata, DocumentChunk


class PageText:
    """Extracted text of one PDF page (1-based page number)."""

    def __init__(self, page: int, text: str) -> None:
        self.page = page
        self.text = text


def load_pdf_pages(path: Path) -> list[PageText]:
    """Extract text per page, skipping pages with no extractable text."""
    reader = PdfReader(str(path))
    pages: list[PageText] = []
    for number, page in enumerate(reader.pages, start=1):
        text = (page.extract_text() or "").strip()
        if text:
            pages.append(PageText(page=number, text=text))
    return pages


def split_pages(
    pages: list[PageText],
    *,
    chunk_size: int,
    chunk_overlap: int,
    separators: list[str],
) -> list[tuple[int, str]]:
    """Split each page into overlapping windows, keeping the page number.

    Returns (page, text) pairs in document order.
    """
    splitter = RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        length_function=len,
        separators=separators,
    )
    pieces: list[tuple[int, str]] = []
    for page in pages:
        pieces.extend((page.page, text) for text in splitter.split_text(page.text))
    return pieces


def _slug(stem: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", stem.lower()).strip("_") or "document"


def build_chunks(
    path: Path,
    pieces: list[tuple[int | None, str]],
    *,
    ingested_at: datetime.datetime | None = None,
) -> list[DocumentChunk]:
    """Attach source, position and ingestion metadata to each split piece."""
    if ingested_at is None:
        ingested_at = datetime.datetime.now(datetime.UTC)
    prefix = _slug(path.stem)
    return [
        DocumentChunk(
            content=text,
            metadata=ChunkMetadata(
                source_file=path.name,
                full_path=str(path.resolve()),
                page=page,
                chunk_index=idx,
                doc_id=f"{prefix}_{idx}",
                ingested_at=ingested_at,
            ),
        )
        for idx, (page, text) in enumerate(pieces)
    ]


def parse_and_chunk_pdf(
    path: Path,
    *,
    chunk_size: int = 3500,
    chunk_overlap: int = 500,
    separators: list[str] | None = None,
) -> list[DocumentChunk]:
    """Convenience: load a PDF and return its chunks."""
    pages = load_pdf_pages(path)
    pieces = split_pages(
        pages,
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        separators=separators or ["\n\n", "\n", " ", ""],
    )
    return build_chunks(path, pieces)
