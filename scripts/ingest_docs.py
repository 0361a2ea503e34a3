"""CLI script to ingest PDF knowledge base documents into Qdrant.

Usage:
    python scripts/ingest_docs.py                      # configured KNOWLEDGE_BASE_PATH
    python scripts/ingest_docs.py --file data/Knowledge_Base.pdf
    python scripts/ingest_docs.py --directory data/
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from contract_risk.clients import RagClients, build_clients
from contract_risk.config import settings
from contract_risk.services.ingestion_service import IngestionError, ingest_document


async def ingest_files(clients: RagClients, files: list[Path]) -> int:
    total_chunks = 0
    for f in files:
        print(f"\nIngesting {f.name}...")
        try:
            inserted = await ingest_document(clients, f)
        except IngestionError as e:
            print(f"  Skipped {f.name} ({e.code}: {e.message})")
            continue
        print(f"  Upserted {inserted} chunks")
        total_chunks += inserted
    return total_chunks


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Ingest PDF knowledge base documents into Qdrant"
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--directory", type=Path, help="Directory of PDF files to ingest")
    group.add_argument("--file", type=Path, help="Single PDF file to ingest")
    parser.add_argument(
        "--collection", type=str, default=None, help="Qdrant collection name override"
    )
    args = parser.parse_args()

    if not settings.llm_configured:
        print("Error: set GOOGLE_API_KEY or USE_VERTEXAI=true before ingesting")
        sys.exit(1)

    run_settings = settings
    if args.collection:
        run_settings = settings.model_copy(update={"qdrant_collection": args.collection})

    if args.directory:
        if not args.directory.is_dir():
            print(f"Error: Directory not found: {args.directory}")
            sys.exit(1)
        files = sorted(args.directory.glob("*.pdf"))
        if not files:
            print(f"No .pdf files found in {args.directory}")
            sys.exit(1)
        print(f"Found {len(files)} PDF files")
    else:
        files = [args.file or Path(run_settings.knowledge_base_path)]

    async def run() -> int:
        clients = build_clients(run_settings)
        try:
            return await ingest_files(clients, files)
        finally:
            await clients.close()

    total_chunks = asyncio.run(run())
    print(f"\nDone! Ingested {total_chunks} total chunks.")


if __name__ == "__main__":
    main()
