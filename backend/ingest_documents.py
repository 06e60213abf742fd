"""
Document Ingestion Script for the DataTalks RAG assistant.

This script:
1. Connects to Supabase and the local Ollama server
2. Finds PDFs in the uploads directory
3. Skips files that were already ingested (matched by filename)
4. Chunks new documents by topic
5. Generates embeddings with Ollama and stores them

Usage:
    python ingest_documents.py [--uploads DIR] [--json-logs]
"""
import argparse
import asyncio
import sys
import logging
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from services.context import RAGContext
from services.document_loader import DocumentLoader
from config import UPLOADS_DIR, LOG_LEVEL
from logger import setup_logging

logger = logging.getLogger(__name__)


async def run(uploads_dir: str) -> int:
    """Ingest every new PDF in uploads_dir. Returns the number of new documents."""
    logger.info("=" * 60)
    logger.info("Starting DataTalks document ingestion")
    logger.info("=" * 60)

    logger.info("[1/3] Initializing services...")
    context = await RAGContext.connect()

    try:
        logger.info("[2/3] Warming up embedding model...")
        if not await context.embedding_model.warmup():
            logger.warning("Embedding model warmup failed; chunks that fail to embed will be skipped")

        logger.info(f"[3/3] Processing PDFs from {uploads_dir}...")
        stored = await context.ingestion_service.ingest_directory(DocumentLoader(uploads_dir))

        document_count = await context.vector_store.count_documents()
        embedding_count = await context.vector_store.count_embeddings()
    finally:
        await context.aclose()

    logger.info("=" * 60)
    logger.info("INGESTION COMPLETE")
    logger.info(f"New documents: {len(stored)}")
    logger.info(f"Documents in store: {document_count}")
    logger.info(f"Embeddings in store: {embedding_count}")
    logger.info("=" * 60)
    return len(stored)


def main():
    """Main ingestion process."""
    parser = argparse.ArgumentParser(description="Ingest conference PDFs into the vector store")
    parser.add_argument("--uploads", default=UPLOADS_DIR, help="Directory containing PDF files")
    parser.add_argument("--json-logs", action="store_true", help="Emit structured JSON logs")
    args = parser.parse_args()

    if args.json_logs:
        setup_logging(LOG_LEVEL)

    try:
        asyncio.run(run(args.uploads))
    except KeyboardInterrupt:
        logger.warning("Ingestion interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Ingestion failed: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
