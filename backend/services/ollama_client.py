"""HTTP transport for the local Ollama model server."""
import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional

import httpx

from config import OLLAMA_BASE_URL, OLLAMA_TIMEOUT

logger = logging.getLogger(__name__)


class TransientBackendError(RuntimeError):
    """Model backend unreachable or returned something unusable."""


class OllamaClient:
    """Thin async wrapper around Ollama's JSON API with retry on transient failures."""

    def __init__(
        self,
        base_url: str = OLLAMA_BASE_URL,
        timeout: float = OLLAMA_TIMEOUT,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        max_delay: float = 10.0
    ):
        """
        Initialize the transport.

        Args:
            base_url: Ollama server root, e.g. http://localhost:11434
            timeout: Per-request timeout in seconds
            max_retries: Attempts for connection errors and 5xx responses
            initial_delay: First backoff delay in seconds (doubles each retry)
            max_delay: Upper bound for the backoff delay
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        # One pooled client per transport, reopened after aclose()
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the pooled HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a JSON payload to /api/{endpoint} and return the decoded reply.

        Streamed (newline-delimited JSON) replies are collapsed to their last
        object, which is the one carrying the final result.

        Raises:
            TransientBackendError: If every attempt fails or the reply is malformed
        """
        url = f"{self.base_url}/api/{endpoint}"
        delay = self.initial_delay
        last_error: Optional[str] = None

        for attempt in range(self.max_retries):
            try:
                start_time = time.time()

                response = await self._get_client().post(url, json=payload)

                elapsed = time.time() - start_time

                if response.status_code >= 500:
                    last_error = f"Ollama returned {response.status_code}: {response.text[:200]}"
                    logger.warning(
                        f"{last_error} on attempt {attempt + 1}/{self.max_retries}"
                    )
                elif response.status_code != 200:
                    error_msg = f"Ollama request to {endpoint} failed with status {response.status_code}: {response.text[:200]}"
                    logger.error(error_msg)
                    raise TransientBackendError(error_msg)
                else:
                    logger.debug(f"Ollama /api/{endpoint} answered in {elapsed:.2f}s")
                    return self.parse_body(response.text)

            except httpx.TimeoutException:
                last_error = f"Request timeout after {self.timeout}s"
                logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

            except httpx.RequestError as e:
                last_error = f"Network error: {str(e)}"
                logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

            if attempt < self.max_retries - 1:
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.max_delay)

        error_msg = f"Ollama /api/{endpoint} failed after {self.max_retries} attempts. Last error: {last_error}"
        logger.error(error_msg)
        raise TransientBackendError(error_msg)

    @staticmethod
    def parse_body(text: str) -> Dict[str, Any]:
        """
        Decode an Ollama reply body.

        Single JSON objects are decoded as-is. Newline-delimited streams keep
        only the last non-blank line; intermediate partial objects are dropped.

        Raises:
            TransientBackendError: If the body is empty or not a JSON object
        """
        lines = [line for line in (text or "").strip().split("\n") if line.strip()]
        if not lines:
            raise TransientBackendError("Ollama returned an empty body")

        try:
            data = json.loads(lines[-1])
        except json.JSONDecodeError as e:
            raise TransientBackendError(f"Malformed JSON from Ollama: {str(e)}") from e

        if not isinstance(data, dict):
            raise TransientBackendError(f"Expected a JSON object from Ollama, got {type(data).__name__}")

        if "error" in data:
            raise TransientBackendError(f"Ollama error: {data['error']}")

        return data
