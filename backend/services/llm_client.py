"""LLM Client for text generation on the local Ollama server."""
import time
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Sequence
import logging

from config import CHAT_MODEL
from models.chunk import ScoredCandidate
from services.ollama_client import OllamaClient, TransientBackendError

logger = logging.getLogger(__name__)


@dataclass
class GenerationOptions:
    """Sampling options for a single generation request."""
    temperature: float = 0.7
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    max_tokens: Optional[int] = None
    stop: List[str] = field(default_factory=list)
    repeat_penalty: Optional[float] = None
    seed: Optional[int] = None  # fixed seed makes sampling deterministic

    def to_ollama(self) -> Dict[str, Any]:
        """Translate to Ollama's ``options`` object, omitting unset values."""
        options: Dict[str, Any] = {"temperature": self.temperature}
        if self.top_p is not None:
            options["top_p"] = self.top_p
        if self.top_k is not None:
            options["top_k"] = self.top_k
        if self.max_tokens is not None:
            options["num_predict"] = self.max_tokens
        if self.stop:
            options["stop"] = list(self.stop)
        if self.repeat_penalty is not None:
            options["repeat_penalty"] = self.repeat_penalty
        if self.seed is not None:
            options["seed"] = self.seed
        return options


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(TransientBackendError):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


NO_DOCUMENTS_MESSAGES = {
    "en": "Sorry, I could not find relevant information in the documents. Could you rephrase your question?",
    "pl": "Przepraszam, nie znalazłem odpowiednich informacji w dokumentach. Czy możesz zadać pytanie inaczej?",
}

SYSTEM_PROMPTS = {
    "en": """You are an AI expert for the DataTalks 2025 event at Browary Warszawskie, Warsaw.

YOUR ROLE:
- Answer professionally and specifically in English
- Use only information from the provided sources
- If information is missing from sources, state this clearly
- Provide practical, actionable answers
- Always mention specific sources in your response

EVENT CONTEXT:
- Name: DataTalks 2025
- Venue: Browary Warszawskie, ul. Grzybowska 58/60, Warsaw
- Date: October 21-22, 2025
- Monday: Conference (8:30-18:00)
- Tuesday: Workshops (contact organizers)""",
    "pl": """Jesteś ekspertem AI dla wydarzenia DataTalks 2025 w Browary Warszawskie, Warszawa.

TWOJA ROLA:
- Odpowiadaj profesjonalnie i konkretnie w języku polskim
- Używaj tylko informacji z podanych źródeł
- Jeśli informacji brak w źródłach, powiedz to jasno
- Podawaj praktyczne, użyteczne odpowiedzi
- Zawsze wspominaj konkretne źródła w odpowiedzi

KONTEKST WYDARZENIA:
- Nazwa: DataTalks 2025
- Miejsce: Browary Warszawskie, ul. Grzybowska 58/60, Warszawa
- Data: 21-22 października 2025
- Poniedziałek: Konferencja (8:30-18:00)
- Wtorek: Warsztaty (kontakt z organizatorami)""",
}


class LLMClient:
    """Client for text generation through Ollama's /api/generate endpoint."""

    def __init__(self, client: Optional[OllamaClient] = None, default_model: str = CHAT_MODEL):
        """
        Initialize LLM client.

        Args:
            client: Shared Ollama transport (a default one is created if omitted)
            default_model: Model used when generate() is called without one
        """
        self.client = client or OllamaClient()
        self.default_model = default_model
        logger.info("LLMClient initialized successfully")

    async def generate(
        self,
        prompt: str,
        options: Optional[GenerationOptions] = None,
        model: Optional[str] = None
    ) -> LLMResponse:
        """
        Generate a complete (non-streamed) response.

        Args:
            prompt: Complete prompt
            options: Sampling options (defaults to GenerationOptions())
            model: Model tag, defaults to the client's default model

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        model = model or self.default_model
        options = options or GenerationOptions()
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {model}")

            data = await self.client.post("generate", {
                "model": model,
                "prompt": prompt,
                "stream": False,
                "options": options.to_ollama()
            })

            latency_ms = int((time.time() - start_time) * 1000)

            text = data.get("response")
            if not isinstance(text, str):
                error = LLMError(
                    code="MALFORMED_RESPONSE",
                    message="Ollama reply did not contain a 'response' string.",
                    details={"model": model, "latency_ms": latency_ms, "keys": sorted(data.keys())}
                )
                logger.error(
                    f"Malformed response: model={model}, latency={latency_ms}ms",
                    extra={"error_code": error.code, "error_details": error.details}
                )
                raise LLMClientError(error)

            tokens_input = int(data.get("prompt_eval_count") or 0)
            tokens_output = int(data.get("eval_count") or 0)

            logger.info(
                f"Generated response: model={model}, "
                f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
                f"latency={latency_ms}ms"
            )

            return LLMResponse(
                text=text,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                latency_ms=latency_ms,
                model_used=model
            )

        except LLMClientError:
            raise

        except TransientBackendError as e:
            latency_ms = int((time.time() - start_time) * 1000)
            error = LLMError(
                code="BACKEND_UNAVAILABLE",
                message="Model server is unavailable. Please try again.",
                details={
                    "model": model,
                    "latency_ms": latency_ms,
                    "original_error": str(e)
                }
            )
            logger.error(
                f"Backend error: model={model}, latency={latency_ms}ms, error={e}",
                extra={"error_code": error.code, "error_details": error.details}
            )
            raise LLMClientError(error) from e

        except Exception as e:
            latency_ms = int((time.time() - start_time) * 1000)
            error = LLMError(
                code="UNKNOWN_ERROR",
                message=f"Unexpected error during generation: {str(e)}",
                details={
                    "model": model,
                    "latency_ms": latency_ms,
                    "original_error": str(e),
                    "error_type": type(e).__name__
                }
            )
            logger.error(
                f"Unexpected error: model={model}, latency={latency_ms}ms, error={e}",
                exc_info=True,
                extra={"error_code": error.code, "error_details": error.details}
            )
            raise LLMClientError(error) from e

    @staticmethod
    def answer_options() -> GenerationOptions:
        """Sampling options for the final answer."""
        return GenerationOptions(
            temperature=0.7,
            top_k=40,
            top_p=0.9,
            max_tokens=500,
            repeat_penalty=1.1,
            stop=["USER:", "QUESTION:", "SOURCES:", "CONTEXT:"]
        )

    @staticmethod
    def no_documents_message(language: str = "en") -> str:
        return NO_DOCUMENTS_MESSAGES.get(language, NO_DOCUMENTS_MESSAGES["en"])

    @staticmethod
    def build_prompt(
        question: str,
        candidates: Sequence[ScoredCandidate],
        language: str = "en",
        max_sources: int = 5
    ) -> str:
        """
        Build the answer prompt with the retrieved sources.

        Args:
            question: User question
            candidates: Retrieved candidates, best first
            language: "en" or "pl"
            max_sources: How many candidates to include as sources

        Returns:
            Complete prompt string
        """
        source_blocks = []
        for index, candidate in enumerate(candidates[:max_sources], 1):
            relevance = f"{candidate.similarity * 100:.1f}"
            quality = f" (Quality: {candidate.rerank_score}/10)" if candidate.rerank_score else ""
            source_blocks.append(
                f"[Source {index}] {candidate.filename} - {relevance}% match{quality}:\n"
                f"{candidate.chunk_text}"
            )
        document_context = "\n\n---\n\n".join(source_blocks)

        system_prompt = SYSTEM_PROMPTS.get(language, SYSTEM_PROMPTS["en"])

        return f"""{system_prompt}

RELEVANT SOURCES:
{document_context}

QUESTION: {question}

ANSWER (be specific and cite sources):"""
