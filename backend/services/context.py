"""Explicit wiring of the retrieval services, passed to entry points instead of globals."""
import logging
from dataclasses import dataclass
from typing import Optional

from config import RetrievalSettings
from services.embedding_model import EmbeddingModel
from services.ingestion_service import IngestionService
from services.llm_client import LLMClient
from services.ollama_client import OllamaClient
from services.query_formulator import QueryFormulator
from services.reranker import Reranker
from services.retrieval_engine import RetrievalEngine
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)


@dataclass
class RAGContext:
    """Everything a request or ingestion run needs, built once per process."""
    settings: RetrievalSettings
    vector_store: VectorStore
    embedding_model: EmbeddingModel
    llm_client: LLMClient
    retrieval_engine: RetrievalEngine
    ingestion_service: IngestionService
    ollama_client: OllamaClient

    @classmethod
    def build(
        cls,
        vector_store: VectorStore,
        settings: Optional[RetrievalSettings] = None,
        ollama_client: Optional[OllamaClient] = None
    ) -> "RAGContext":
        """Wire services around an already connected vector store."""
        settings = settings or RetrievalSettings()
        ollama_client = ollama_client or OllamaClient()

        embedding_model = EmbeddingModel(ollama_client, model_name=settings.embedding_model_name)
        llm_client = LLMClient(ollama_client, default_model=settings.chat_model_name)

        query_formulator = QueryFormulator(
            llm_client,
            use_query_expansion=settings.use_query_expansion,
            use_hyde=settings.use_hyde
        )
        reranker = Reranker(llm_client)
        retrieval_engine = RetrievalEngine(
            vector_store,
            embedding_model,
            query_formulator,
            reranker=reranker,
            settings=settings
        )

        logger.info(
            "RAG context ready",
            extra={
                "use_hyde": settings.use_hyde,
                "use_query_expansion": settings.use_query_expansion,
                "use_reranking": settings.use_reranking,
                "similarity_threshold": settings.similarity_threshold,
                "top_k": settings.top_k,
            }
        )

        return cls(
            settings=settings,
            vector_store=vector_store,
            embedding_model=embedding_model,
            llm_client=llm_client,
            retrieval_engine=retrieval_engine,
            ingestion_service=IngestionService(vector_store, embedding_model),
            ollama_client=ollama_client
        )

    @classmethod
    async def connect(cls, settings: Optional[RetrievalSettings] = None) -> "RAGContext":
        """Connect to Supabase using environment credentials and wire services."""
        vector_store = await VectorStore.connect()
        return cls.build(vector_store, settings=settings)

    async def aclose(self) -> None:
        """Release the pooled Ollama connection."""
        await self.ollama_client.aclose()
