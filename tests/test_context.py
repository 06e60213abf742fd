"""Unit tests for RAGContext wiring."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from config import RetrievalSettings
from services.context import RAGContext
from services.ollama_client import OllamaClient
from services.reranker import Reranker


class TestRAGContext:
    """Test suite for RAGContext."""

    def test_build_shares_one_transport(self):
        store = MagicMock()
        transport = OllamaClient(base_url="http://ollama:11434")
        settings = RetrievalSettings(
            use_hyde=True,
            use_query_expansion=False,
            use_reranking=True,
            similarity_threshold=0.5,
            top_k=4,
            chat_model_name="llama3.2",
            embedding_model_name="nomic-embed-text"
        )

        context = RAGContext.build(store, settings=settings, ollama_client=transport)

        assert context.settings is settings
        assert context.vector_store is store
        assert context.embedding_model.client is transport
        assert context.embedding_model.model_name == "nomic-embed-text"
        assert context.llm_client.client is transport
        assert context.llm_client.default_model == "llama3.2"

        engine = context.retrieval_engine
        assert engine.settings is settings
        assert engine.vector_store is store
        assert engine.query_formulator.use_hyde is True
        assert engine.query_formulator.use_query_expansion is False
        assert isinstance(engine.reranker, Reranker)
        assert context.ingestion_service.vector_store is store
        assert context.ingestion_service.embedding_model is context.embedding_model
        assert context.ollama_client is transport

    @pytest.mark.asyncio
    @patch('services.context.VectorStore.connect', new_callable=AsyncMock)
    async def test_connect_uses_environment_store(self, mock_connect):
        store = MagicMock()
        mock_connect.return_value = store

        context = await RAGContext.connect(RetrievalSettings(top_k=3))

        mock_connect.assert_awaited_once_with()
        assert context.vector_store is store
        assert context.retrieval_engine.settings.top_k == 3

    @pytest.mark.asyncio
    async def test_aclose_closes_transport(self):
        transport = MagicMock()
        transport.aclose = AsyncMock()
        context = RAGContext.build(MagicMock(), settings=RetrievalSettings(), ollama_client=transport)

        await context.aclose()

        transport.aclose.assert_awaited_once()
