"""Unit tests for EmbeddingModel class."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import AsyncMock, Mock
from services.embedding_model import EmbeddingModel, EmbeddingError
from services.ollama_client import TransientBackendError


@pytest.fixture
def mock_client():
    client = Mock()
    client.post = AsyncMock(return_value={"embeddings": [[0.1, 0.2, 0.3]]})
    return client


class TestEmbeddingModel:
    """Test suite for EmbeddingModel."""

    def test_initialization_defaults(self, mock_client):
        model = EmbeddingModel(mock_client)
        assert model.client is mock_client
        assert model.model_name == "mxbai-embed-large"

    @pytest.mark.asyncio
    async def test_embed_text_empty_string(self, mock_client):
        model = EmbeddingModel(mock_client)

        with pytest.raises(ValueError, match="Text cannot be empty"):
            await model.embed_text("")

        with pytest.raises(ValueError, match="Text cannot be empty"):
            await model.embed_text("   ")

        mock_client.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_embed_text_success(self, mock_client):
        model = EmbeddingModel(mock_client)
        result = await model.embed_text("where is the venue")

        assert result == [0.1, 0.2, 0.3]
        mock_client.post.assert_awaited_once_with(
            "embed", {"model": "mxbai-embed-large", "input": "where is the venue"}
        )

    @pytest.mark.asyncio
    async def test_embed_text_converts_ints(self, mock_client):
        mock_client.post.return_value = {"embeddings": [[1, 0, 2]]}
        model = EmbeddingModel(mock_client)

        assert await model.embed_text("text") == [1.0, 0.0, 2.0]

    @pytest.mark.asyncio
    async def test_embed_batch_empty_list(self, mock_client):
        model = EmbeddingModel(mock_client)

        with pytest.raises(ValueError, match="Texts list cannot be empty"):
            await model.embed_batch([])

    @pytest.mark.asyncio
    async def test_embed_batch_all_empty_strings(self, mock_client):
        model = EmbeddingModel(mock_client)

        with pytest.raises(ValueError, match="All texts in batch are empty"):
            await model.embed_batch(["", "   ", ""])

    @pytest.mark.asyncio
    async def test_embed_batch_success_filters_empty(self, mock_client):
        mock_client.post.return_value = {"embeddings": [[0.1, 0.2], [0.3, 0.4]]}
        model = EmbeddingModel(mock_client)

        result = await model.embed_batch(["text1", "", "text2"])

        assert result == [[0.1, 0.2], [0.3, 0.4]]
        payload = mock_client.post.await_args.args[1]
        assert payload["input"] == ["text1", "text2"]

    @pytest.mark.asyncio
    async def test_embed_batch_count_mismatch(self, mock_client):
        model = EmbeddingModel(mock_client)

        with pytest.raises(EmbeddingError, match="Expected 2 embeddings, got 1"):
            await model.embed_batch(["text1", "text2"])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {},
        {"embeddings": []},
        {"embeddings": "nope"},
        {"embeddings": [[]]},
        {"embeddings": [["a", "b"]]},
    ])
    async def test_malformed_response(self, mock_client, payload):
        mock_client.post.return_value = payload
        model = EmbeddingModel(mock_client)

        with pytest.raises(EmbeddingError):
            await model.embed_text("text")

    @pytest.mark.asyncio
    async def test_backend_failure_is_wrapped(self, mock_client):
        mock_client.post.side_effect = TransientBackendError("connection refused")
        model = EmbeddingModel(mock_client)

        with pytest.raises(EmbeddingError, match="connection refused") as exc_info:
            await model.embed_text("text")

        assert isinstance(exc_info.value, TransientBackendError)

    @pytest.mark.asyncio
    async def test_warmup_success(self, mock_client):
        model = EmbeddingModel(mock_client)
        assert await model.warmup() is True

    @pytest.mark.asyncio
    async def test_warmup_failure(self, mock_client):
        mock_client.post.side_effect = TransientBackendError("down")
        model = EmbeddingModel(mock_client)
        assert await model.warmup() is False
