"""Unit tests for document_processor: PDF page loading and chunking."""

from __future__ import annotations

import datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from contract_risk.services import document_processor
from contract_risk.services.document_processor import (
    PageText,
    build_chunks,
    load_pdf_pages,
    split_pages,
)

SEPARATORS = ["\n\n", "\n", ".", "!", "?", ",", " ", ""]

CLAUSE_TEXT = """\
1. Term. This Agreement commences on the Effective Date and continues for one year.

2. Termination. Either party may terminate with 30 days notice. Termination for \
cause requires written notice of the material breach.

3. Payment. Invoices are payable within 45 days. Late payments accrue interest \
at 1.5% per month.

4. Liability. Neither party is liable for indirect or consequential damages.
"""


def _fake_reader(page_texts: list[str | None]) -> MagicMock:
    reader = MagicMock()
    pages = []
    for text in page_texts:
        page = MagicMock()
        page.extract_text.return_value = text
        pages.append(page)
    reader.pages = pages
    return reader


class TestLoadPdfPages:
    def test_numbers_pages_from_one(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            document_processor,
            "PdfReader",
            lambda path: _fake_reader(["First page", "Second page"]),
        )
        pages = load_pdf_pages(Path("kb.pdf"))
        assert [(p.page, p.text) for p in pages] == [
            (1, "First page"),
            (2, "Second page"),
        ]

    def test_skips_pages_without_text(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            document_processor,
            "PdfReader",
            lambda path: _fake_reader([None, "   ", "Body"]),
        )
        pages = load_pdf_pages(Path("kb.pdf"))
        assert [p.page for p in pages] == [3]


class TestSplitPages:
    def test_short_page_is_single_chunk(self) -> None:
        pieces = split_pages(
            [PageText(1, "Short clause.")],
            chunk_size=200,
            chunk_overlap=20,
            separators=SEPARATORS,
        )
        assert pieces == [(1, "Short clause.")]

    def test_long_page_splits_within_size(self) -> None:
        pieces = split_pages(
            [PageText(1, CLAUSE_TEXT)],
            chunk_size=120,
            chunk_overlap=30,
            separators=SEPARATORS,
        )
        assert len(pieces) > 1
        assert all(len(text) <= 120 for _, text in pieces)
        joined = " ".join(text for _, text in pieces)
        assert "30 days notice" in joined

    def test_keeps_page_numbers_in_order(self) -> None:
        pieces = split_pages(
            [PageText(1, CLAUSE_TEXT), PageText(2, "Schedule A. Pricing.")],
            chunk_size=120,
            chunk_overlap=30,
            separators=SEPARATORS,
        )
        pages = [page for page, _ in pieces]
        assert pages == sorted(pages)
        assert pages[-1] == 2


class TestBuildChunks:
    def test_metadata_fields(self) -> None:
        ingested_at = datetime.datetime(2025, 3, 1, tzinfo=datetime.UTC)
        chunks = build_chunks(
            Path("data/Knowledge_Base.pdf"),
            [(1, "alpha"), (1, "beta"), (2, "gamma")],
            ingested_at=ingested_at,
        )

        assert [c.content for c in chunks] == ["alpha", "beta", "gamma"]
        assert [c.metadata.chunk_index for c in chunks] == [0, 1, 2]
        assert [c.metadata.page for c in chunks] == [1, 1, 2]
        assert chunks[2].metadata.doc_id == "knowledge_base_2"
        assert chunks[0].metadata.source_file == "Knowledge_Base.pdf"
        assert chunks[0].metadata.full_path == str(
            Path("data/Knowledge_Base.pdf").resolve()
        )
        assert all(c.metadata.ingested_at == ingested_at for c in chunks)

    def test_defaults_ingested_at_to_now(self) -> None:
        before = datetime.datetime.now(datetime.UTC)
        chunks = build_chunks(Path("kb.pdf"), [(None, "text")])
        assert chunks[0].metadata.ingested_at >= before
        assert chunks[0].metadata.page is None

    def test_full_path_is_resolved(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        relative = build_chunks(Path("./data/kb.pdf"), [(1, "text")])[0]
        absolute = build_chunks(tmp_path / "data" / "kb.pdf", [(1, "text")])[0]
        assert relative.metadata.full_path == absolute.metadata.full_path

    def test_chunks_are_immutable(self) -> None:
        chunk = build_chunks(Path("kb.pdf"), [(1, "text")])[0]
        with pytest.raises(ValidationError):
            chunk.content = "changed"
