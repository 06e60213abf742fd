"""Services for the DataTalks RAG assistant."""
from .ollama_client import OllamaClient, TransientBackendError
from .document_loader import DocumentLoader
from .chunking_engine import ChunkingEngine
from .embedding_model import EmbeddingModel, EmbeddingError
from .vector_store import VectorStore
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError, GenerationOptions
from .query_formulator import QueryFormulator
from .reranker import Reranker
from .retrieval_engine import RetrievalEngine
from .ingestion_service import IngestionService
from .context import RAGContext

__all__ = ['OllamaClient', 'TransientBackendError', 'DocumentLoader', 'ChunkingEngine', 'EmbeddingModel', 'EmbeddingError', 'VectorStore', 'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError', 'GenerationOptions', 'QueryFormulator', 'Reranker', 'RetrievalEngine', 'IngestionService', 'RAGContext']
