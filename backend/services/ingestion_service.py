"""Document ingestion: clean, chunk, embed and store, once per filename."""
import logging
import re
import uuid
from typing import List, Optional

import numpy as np

from models.chunk import StoredEmbedding
from models.document import Document
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader
from services.embedding_model import EmbeddingModel
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
PROGRESS_EVERY = 5


class IngestionService:
    """Turn raw document text into stored chunk embeddings."""

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_model: EmbeddingModel,
        chunking_engine: Optional[ChunkingEngine] = None
    ):
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        self.chunking_engine = chunking_engine or ChunkingEngine()

    async def ingest(self, filename: str, raw_text: str) -> Optional[Document]:
        """
        Ingest one document unless a document with the same filename exists.

        Nothing is stored unless at least one chunk embeds, so a failed run
        can simply be retried.

        Args:
            filename: Source file name, used as the idempotency key
            raw_text: Extracted document text

        Returns:
            The stored Document, or None when skipped (already present, no
            text, or no chunk could be embedded)

        Raises:
            RuntimeError: If the store rejects the document or its embeddings
        """
        if await self.vector_store.document_exists(filename):
            logger.info(f"{filename} already processed, skipping")
            return None

        clean_text = _WHITESPACE.sub(" ", raw_text or "").strip()
        chunks = self.chunking_engine.chunk_text(clean_text)
        if not chunks:
            logger.warning(f"No text content found in {filename}")
            return None

        document = Document(
            id=str(uuid.uuid4()),
            filename=filename,
            full_text=clean_text,
            chunk_texts=chunks
        )

        # The existence check must only ever see documents that have embeddings
        embeddings = await self.embed_chunks(document)
        if not embeddings:
            logger.error(f"No chunks of {filename} could be embedded, not storing it")
            return None

        await self.vector_store.insert_document(document)
        try:
            await self.vector_store.insert_embeddings(embeddings)
        except Exception:
            logger.error(f"Rolling back document {filename} after embedding insert failed")
            await self.vector_store.delete_document(document.id)
            raise

        logger.info(
            f"Processed {filename} - {len(chunks)} chunks, {len(embeddings)} embeddings",
            extra={"document_id": document.id}
        )
        return document

    async def embed_chunks(self, document: Document) -> List[StoredEmbedding]:
        """
        Embed each chunk of a document; chunks that fail to embed are skipped.
        """
        total = len(document.chunk_texts)
        logger.info(f"Generating embeddings for {total} chunks...")

        embeddings: List[StoredEmbedding] = []
        for index, chunk_text in enumerate(document.chunk_texts):
            try:
                vector = await self.embedding_model.embed_text(chunk_text)
            except Exception as e:
                logger.error(f"Error generating embedding for chunk {index}: {str(e)}")
                continue

            embeddings.append(StoredEmbedding(
                id=str(uuid.uuid4()),
                document_id=document.id,
                chunk_text=chunk_text,
                embedding=np.asarray(vector, dtype=np.float64),
                chunk_index=index,
                filename=document.filename
            ))

            if (index + 1) % PROGRESS_EVERY == 0:
                logger.info(f"Processed {index + 1}/{total} chunks")

        return embeddings

    async def ingest_directory(self, loader: DocumentLoader) -> List[Document]:
        """
        Ingest every PDF the loader finds; a failing file does not stop the rest.

        Returns:
            Documents newly stored in this run
        """
        stored: List[Document] = []
        for filename in loader.list_pdfs():
            try:
                if await self.vector_store.document_exists(filename):
                    logger.info(f"{filename} already processed, skipping")
                    continue

                logger.info(f"Processing {filename}...")
                source = loader.load_pdf(filename)
                document = await self.ingest(source.filename, source.text)
                if document:
                    stored.append(document)
            except Exception as e:
                logger.error(f"Error processing {filename}: {str(e)}", exc_info=True)

        logger.info(f"PDF processing complete: {len(stored)} new documents")
        return stored
