"""Model-driven reranking of retrieval candidates."""
import asyncio
import logging
import re
from dataclasses import replace
from typing import List, Optional, Sequence

from config import RERANK_BATCH_SIZE, RERANK_BATCH_DELAY
from models.chunk import ScoredCandidate
from services.llm_client import LLMClient, GenerationOptions

logger = logging.getLogger(__name__)

RERANK_PROMPTS = {
    "en": """Rate how well this text answers the question "{query}".

Text: {text}...

Rate 1-10 (number only):""",
    "pl": """Oceń jak dobrze ten tekst odpowiada na pytanie "{query}".

Tekst: {text}...

Oceń na skali 1-10 (tylko cyfra):""",
}

RERANK_OPTIONS = GenerationOptions(temperature=0.1, max_tokens=5)

PREVIEW_LENGTH = 400
DEFAULT_SCORE = 5
MIN_SCORE = 1
MAX_SCORE = 10
_INTEGER = re.compile(r"\d+")


class Reranker:
    """Ask the chat model to score each candidate 1-10 and reorder by that score."""

    def __init__(
        self,
        llm_client: LLMClient,
        model: Optional[str] = None,
        batch_size: int = RERANK_BATCH_SIZE,
        batch_delay: float = RERANK_BATCH_DELAY
    ):
        """
        Args:
            llm_client: Client used for scoring requests
            model: Chat model tag (defaults to the client's default)
            batch_size: Scoring requests in flight at once
            batch_delay: Pause in seconds between batches
        """
        self.llm_client = llm_client
        self.model = model
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay

    async def rerank(
        self,
        query: str,
        candidates: Sequence[ScoredCandidate],
        language: str = "en"
    ) -> List[ScoredCandidate]:
        """
        Reorder candidates by model-assigned relevance.

        Ties keep their incoming order. If anything goes wrong the incoming
        order is returned unchanged.
        """
        if not candidates:
            return list(candidates)

        try:
            logger.info(f"Reranking {len(candidates)} documents...")
            scores: List[int] = []

            for start in range(0, len(candidates), self.batch_size):
                batch = candidates[start:start + self.batch_size]
                batch_scores = await asyncio.gather(*[
                    self._score(query, candidate, language, start + offset)
                    for offset, candidate in enumerate(batch)
                ])
                scores.extend(batch_scores)

                if start + self.batch_size < len(candidates):
                    await asyncio.sleep(self.batch_delay)

            order = sorted(range(len(candidates)), key=lambda i: scores[i], reverse=True)
            reranked = [replace(candidates[i], rerank_score=scores[i]) for i in order]

            top_scores = ", ".join(str(c.rerank_score) for c in reranked[:3])
            logger.info(f"Reranking complete. Top scores: {top_scores}")
            return reranked

        except Exception as e:
            logger.error(f"Document reranking failed: {str(e)}")
            return list(candidates)

    async def _score(self, query: str, candidate: ScoredCandidate, language: str, index: int) -> int:
        prompt = self.build_prompt(query, candidate.chunk_text, language)
        try:
            response = await self.llm_client.generate(prompt, RERANK_OPTIONS, model=self.model)
            return self.parse_score(response.text)
        except Exception as e:
            logger.error(f"Reranking error for doc {index}: {str(e)}")
            return DEFAULT_SCORE

    @staticmethod
    def build_prompt(query: str, chunk_text: str, language: str = "en") -> str:
        template = RERANK_PROMPTS.get(language, RERANK_PROMPTS["en"])
        return template.format(query=query, text=chunk_text[:PREVIEW_LENGTH])

    @staticmethod
    def parse_score(text: str) -> int:
        """First integer in the reply, 5 when there is none, clamped to 1-10."""
        match = _INTEGER.search((text or "").strip())
        score = int(match.group()) if match else DEFAULT_SCORE
        return max(MIN_SCORE, min(MAX_SCORE, score))
