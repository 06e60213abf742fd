"""Embedding model integration with the local Ollama server."""
import time
import logging
from typing import List, Optional

from config import EMBEDDING_MODEL
from services.ollama_client import OllamaClient, TransientBackendError

logger = logging.getLogger(__name__)


class EmbeddingError(TransientBackendError):
    """Raised when the embedding endpoint fails or returns an unusable vector."""


class EmbeddingModel:
    """Wrapper for Ollama's /api/embed endpoint."""

    def __init__(
        self,
        client: Optional[OllamaClient] = None,
        model_name: str = EMBEDDING_MODEL
    ):
        """
        Initialize the embedding model client.

        Args:
            client: Shared Ollama transport (a default one is created if omitted)
            model_name: Embedding model tag (default: mxbai-embed-large)
        """
        self.client = client or OllamaClient()
        self.model_name = model_name

        logger.info(f"Initialized EmbeddingModel with model: {model_name}")

    async def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            ValueError: If text is empty
            EmbeddingError: If the backend fails or the reply is malformed
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        embeddings = await self._request(text)
        return embeddings[0]

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts in a single request.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors, one per non-empty input

        Raises:
            ValueError: If texts list is empty or contains only empty strings
            EmbeddingError: If the backend fails or the reply is malformed
        """
        if not texts:
            raise ValueError("Texts list cannot be empty")

        valid_texts = [t for t in texts if t and t.strip()]
        if len(valid_texts) < len(texts):
            logger.warning(f"Filtered out {len(texts) - len(valid_texts)} empty texts from batch")

        if not valid_texts:
            raise ValueError("All texts in batch are empty")

        embeddings = await self._request(valid_texts)
        if len(embeddings) != len(valid_texts):
            raise EmbeddingError(
                f"Expected {len(valid_texts)} embeddings, got {len(embeddings)}"
            )
        return embeddings

    async def _request(self, model_input) -> List[List[float]]:
        start_time = time.time()
        try:
            data = await self.client.post("embed", {
                "model": self.model_name,
                "input": model_input
            })
        except TransientBackendError as e:
            raise EmbeddingError(f"Embedding request failed: {str(e)}") from e

        embeddings = self._extract_embeddings(data)
        logger.debug(
            f"Generated {len(embeddings)} embeddings in {time.time() - start_time:.2f}s"
        )
        return embeddings

    @staticmethod
    def _extract_embeddings(data: dict) -> List[List[float]]:
        """
        Validate Ollama's {"embeddings": [[...], ...]} reply.

        Raises:
            EmbeddingError: If the structure is not a non-empty list of numeric vectors
        """
        records = data.get("embeddings")
        if not isinstance(records, list) or not records:
            raise EmbeddingError("Embedding response missing 'embeddings' list")

        embeddings = []
        for index, vector in enumerate(records):
            if not isinstance(vector, list) or not vector or not all(
                isinstance(x, (int, float)) for x in vector
            ):
                raise EmbeddingError(f"Invalid embedding vector at index {index}")
            embeddings.append([float(x) for x in vector])

        return embeddings

    async def warmup(self) -> bool:
        """
        Warm up the model with a dummy query so the first real query is not slow.

        Returns:
            True if warmup successful, False otherwise
        """
        try:
            logger.info("Warming up embedding model...")
            start_time = time.time()

            await self.embed_text("warmup query")

            elapsed = time.time() - start_time
            logger.info(f"Model warmup completed in {elapsed:.1f}s")
            return True

        except Exception as e:
            logger.error(f"Model warmup failed: {str(e)}")
            return False
