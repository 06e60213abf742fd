"""Vector store implementation on Supabase tables with full-scan retrieval."""
import json
import logging
from typing import Any, Dict, List, Optional
from supabase import AsyncClient, acreate_client
from models.chunk import StoredEmbedding
from models.document import Document
from services.similarity import parse_embedding
from config import SUPABASE_URL, SUPABASE_KEY

logger = logging.getLogger(__name__)


class VectorStore:
    """Persist documents and chunk embeddings; scan every embedding at query time."""

    EMBEDDING_COLUMNS = "id, document_id, chunk_text, embedding, chunk_index, documents(filename)"

    def __init__(
        self,
        client: AsyncClient,
        documents_table: str = "documents",
        embeddings_table: str = "embeddings",
        page_size: int = 1000
    ):
        """
        Initialize the vector store with a connected Supabase client.

        Expected schema:
            documents(id text primary key, filename text, content text,
                      chunks text, processed_at timestamptz default now())
            embeddings(id text primary key, document_id text references documents(id),
                       chunk_text text, embedding text, chunk_index int)

        Args:
            client: Async Supabase client
            documents_table: Table holding Document rows
            embeddings_table: Table holding one row per chunk embedding
            page_size: Rows per request when scanning embeddings
        """
        self.client = client
        self.documents_table = documents_table
        self.embeddings_table = embeddings_table
        self.page_size = page_size

        logger.info(f"Initialized VectorStore with tables: {documents_table}, {embeddings_table}")

    @classmethod
    async def connect(
        cls,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        **kwargs
    ) -> "VectorStore":
        """
        Create a store backed by a fresh async Supabase client.

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")

        client = await acreate_client(supabase_url, supabase_key)
        return cls(client, **kwargs)

    async def document_exists(self, filename: str) -> bool:
        """
        Check whether a document with this filename was already ingested.

        Raises:
            RuntimeError: If database operation fails
        """
        try:
            response = await (
                self.client.table(self.documents_table)
                .select("id")
                .eq("filename", filename)
                .limit(1)
                .execute()
            )
            return bool(response.data)
        except Exception as e:
            error_msg = f"Failed to look up document {filename}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e

    async def insert_document(self, document: Document) -> None:
        """
        Insert a document row.

        Raises:
            RuntimeError: If database operation fails
        """
        record = {
            "id": document.id,
            "filename": document.filename,
            "content": document.full_text,
            "chunks": json.dumps(document.chunk_texts, ensure_ascii=False)
        }
        try:
            await self.client.table(self.documents_table).insert(record).execute()
            logger.debug(f"Stored document {document.filename} ({document.id})")
        except Exception as e:
            error_msg = f"Failed to insert document {document.filename}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e

    async def delete_document(self, document_id: str) -> None:
        """
        Delete a document row and any embeddings that reference it.

        Raises:
            RuntimeError: If database operation fails
        """
        try:
            await (
                self.client.table(self.embeddings_table)
                .delete()
                .eq("document_id", document_id)
                .execute()
            )
            await (
                self.client.table(self.documents_table)
                .delete()
                .eq("id", document_id)
                .execute()
            )
            logger.info(f"Deleted document {document_id}")
        except Exception as e:
            error_msg = f"Failed to delete document {document_id}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e

    async def insert_embeddings(self, embeddings: List[StoredEmbedding]) -> int:
        """
        Insert a batch of chunk embeddings.

        Args:
            embeddings: Records whose embedding vectors are set

        Returns:
            Number of rows inserted

        Raises:
            ValueError: If a record carries no vector
            RuntimeError: If database operation fails
        """
        if not embeddings:
            return 0

        records = []
        for item in embeddings:
            if item.embedding is None:
                raise ValueError(f"Embedding {item.id} has no vector")
            records.append({
                "id": item.id,
                "document_id": item.document_id,
                "chunk_text": item.chunk_text,
                "embedding": json.dumps([float(x) for x in item.embedding]),
                "chunk_index": item.chunk_index
            })

        try:
            await self.client.table(self.embeddings_table).insert(records).execute()
            logger.info(f"Stored {len(records)} embeddings")
            return len(records)
        except Exception as e:
            error_msg = f"Failed to insert embeddings: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e

    async def fetch_all_embeddings(self) -> List[StoredEmbedding]:
        """
        Scan every stored embedding joined with its document filename.

        Rows whose vector fails to parse are returned with embedding=None.

        Raises:
            RuntimeError: If database operation fails
        """
        rows: List[Dict[str, Any]] = []
        start = 0
        try:
            while True:
                response = await (
                    self.client.table(self.embeddings_table)
                    .select(self.EMBEDDING_COLUMNS)
                    .order("id")
                    .range(start, start + self.page_size - 1)
                    .execute()
                )
                page = response.data or []
                rows.extend(page)
                if len(page) < self.page_size:
                    break
                start += self.page_size
        except Exception as e:
            error_msg = f"Failed to scan embeddings: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e

        logger.debug(f"Scanned {len(rows)} stored embeddings")
        return [self._to_record(row) for row in rows]

    async def count_documents(self) -> int:
        return await self._count(self.documents_table)

    async def count_embeddings(self) -> int:
        return await self._count(self.embeddings_table)

    async def _count(self, table: str) -> int:
        try:
            response = await self.client.table(table).select("id", count="exact").execute()
            return response.count if response.count is not None else 0
        except Exception as e:
            error_msg = f"Failed to count rows in {table}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e

    @staticmethod
    def _to_record(row: Dict[str, Any]) -> StoredEmbedding:
        document = row.get("documents") or {}
        return StoredEmbedding(
            id=str(row["id"]),
            document_id=str(row.get("document_id", "")),
            chunk_text=row.get("chunk_text") or "",
            embedding=parse_embedding(row.get("embedding")),
            chunk_index=int(row.get("chunk_index") or 0),
            filename=document.get("filename", "") if isinstance(document, dict) else ""
        )
