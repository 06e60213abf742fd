"""Retrieval engine: multi-query search, merge, thresholding and reranking."""
import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from config import RetrievalSettings
from models.chunk import ScoredCandidate, StoredEmbedding
from services.embedding_model import EmbeddingModel
from services.query_formulator import QueryFormulator
from services.reranker import Reranker
from services.similarity import cosine_similarity
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)


class RetrievalEngine:
    """Orchestrate query formulation, full-scan similarity search and reranking."""

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_model: EmbeddingModel,
        query_formulator: QueryFormulator,
        reranker: Optional[Reranker] = None,
        settings: Optional[RetrievalSettings] = None
    ):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: Source of stored chunk embeddings
            embedding_model: Embeds query variants
            query_formulator: Produces the query variants
            reranker: Model-driven reranker, used when settings enable it
            settings: Threshold, top_k and feature toggles
        """
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        self.query_formulator = query_formulator
        self.reranker = reranker
        self.settings = settings or RetrievalSettings()
        logger.info("Initialized RetrievalEngine")

    async def retrieve(
        self,
        query: str,
        top_k: Optional[int] = None,
        language: str = "en"
    ) -> List[ScoredCandidate]:
        """
        Retrieve the most relevant chunks for a question, best first.

        Pipeline:
        1. Build query variants (original, optional expansions, optional HyDE)
        2. Embed each variant and score every stored chunk by cosine similarity
        3. Merge variants, keeping each chunk's best score
        4. Drop candidates below the similarity threshold
        5. Keep the best 2 * top_k as reranking headroom
        6. Rerank when enabled
        7. Return the first top_k

        If the pipeline raises, falls back to retrieve_basic(). Never raises.

        Args:
            query: User question
            top_k: Number of results (defaults to settings.top_k); zero or
                negative yields an empty list
            language: "en" or "pl"

        Returns:
            Scored candidates, possibly empty
        """
        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []

        top_k = self.settings.top_k if top_k is None else top_k
        if top_k <= 0:
            logger.warning(f"Non-positive top_k={top_k} requested, returning empty results")
            return []

        try:
            logger.info(f"Advanced search for: {query[:100]}")

            variants = await self.query_formulator.formulate(query, language)
            records = await self.vector_store.fetch_all_embeddings()
            if not records:
                logger.info("No stored embeddings to search")
                return []

            results = await asyncio.gather(
                *[self._search_variant(variant, records) for variant in variants],
                return_exceptions=True
            )

            all_candidates: List[ScoredCandidate] = []
            for variant, result in zip(variants, results):
                if isinstance(result, BaseException):
                    logger.error(f"Search error for query variant {variant[:60]!r}: {result}")
                    continue
                all_candidates.extend(result)

            merged = self.merge_candidates(all_candidates)
            filtered = self.filter_by_threshold(merged, self.settings.similarity_threshold)
            ranked = sorted(filtered, key=lambda c: c.similarity, reverse=True)[:top_k * 2]

            logger.info(
                f"Found {len(ranked)} documents above similarity threshold "
                f"{self.settings.similarity_threshold}"
            )

            final = ranked
            if self.settings.use_reranking and self.reranker is not None and ranked:
                final = await self.reranker.rerank(query, ranked, language)

            top_results = final[:top_k]
            logger.info(f"Advanced search complete: {len(top_results)} final results")
            return top_results

        except Exception as e:
            logger.error(f"Advanced search failed, falling back to basic search: {str(e)}")
            return await self.retrieve_basic(query, top_k)

    async def retrieve_basic(self, query: str, top_k: Optional[int] = None) -> List[ScoredCandidate]:
        """
        Single-query search with no threshold and no reranking.

        Returns an empty list if anything fails.
        """
        top_k = self.settings.top_k if top_k is None else top_k
        if top_k <= 0:
            return []
        try:
            records = await self.vector_store.fetch_all_embeddings()
            if not records:
                return []
            candidates = await self._search_variant(query, records)
            return sorted(candidates, key=lambda c: c.similarity, reverse=True)[:top_k]
        except Exception as e:
            logger.error(f"Basic search error: {str(e)}")
            return []

    async def _search_variant(
        self,
        variant: str,
        records: Sequence[StoredEmbedding]
    ) -> List[ScoredCandidate]:
        query_embedding = await self.embedding_model.embed_text(variant)
        return self.score_records(query_embedding, records, variant)

    @staticmethod
    def score_records(
        query_embedding: Sequence[float],
        records: Iterable[StoredEmbedding],
        query_used: str
    ) -> List[ScoredCandidate]:
        """Score every record against the query vector; unparsable vectors score 0."""
        return [
            ScoredCandidate(
                record=record,
                similarity=cosine_similarity(query_embedding, record.embedding),
                query_used=query_used
            )
            for record in records
        ]

    @staticmethod
    def merge_candidates(candidates: Iterable[ScoredCandidate]) -> List[ScoredCandidate]:
        """
        Keep one candidate per chunk id, the one with the highest similarity.

        Ties keep the candidate seen first; first-seen order is preserved.
        """
        best: Dict[str, ScoredCandidate] = {}
        for candidate in candidates:
            existing = best.get(candidate.chunk_id)
            if existing is None or candidate.similarity > existing.similarity:
                best[candidate.chunk_id] = candidate
        return list(best.values())

    @staticmethod
    def filter_by_threshold(
        candidates: Iterable[ScoredCandidate],
        threshold: float
    ) -> List[ScoredCandidate]:
        """Drop candidates scoring below the threshold (the threshold itself passes)."""
        return [c for c in candidates if c.similarity >= threshold]
