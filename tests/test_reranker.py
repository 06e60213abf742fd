"""Unit tests for Reranker."""
import sys
import asyncio
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import AsyncMock, Mock, patch
from models.chunk import StoredEmbedding, ScoredCandidate
from services.llm_client import LLMResponse, LLMClientError, LLMError
from services.reranker import Reranker, RERANK_OPTIONS, PREVIEW_LENGTH


def reply(text):
    return LLMResponse(text=text, tokens_input=0, tokens_output=0, latency_ms=1, model_used="m")


def candidate(chunk_id, similarity, text=None):
    record = StoredEmbedding(
        id=chunk_id,
        document_id="doc-1",
        chunk_text=text or f"chunk {chunk_id}",
        embedding=None,
        chunk_index=0,
        filename="agenda.pdf"
    )
    return ScoredCandidate(record=record, similarity=similarity, query_used="q")


def scoring_llm(scores):
    """LLM mock replying with the score mapped to the chunk text in each prompt."""
    async def generate(prompt, options=None, model=None):
        for text, score in scores.items():
            if f"Text: {text}..." in prompt:
                return reply(score)
        return reply("5")

    llm = Mock()
    llm.generate = AsyncMock(side_effect=generate)
    return llm


class TestParseScore:
    """Score parsing and clamping."""

    @pytest.mark.parametrize("text,expected", [
        ("7", 7),
        (" 9\n", 9),
        ("Score: 8/10", 8),
        ("15", 10),
        ("0", 1),
        ("excellent", 5),
        ("", 5),
        (None, 5),
    ])
    def test_parse_score(self, text, expected):
        assert Reranker.parse_score(text) == expected


class TestRerank:
    """Test suite for Reranker.rerank."""

    @pytest.mark.asyncio
    async def test_empty_candidates(self):
        llm = scoring_llm({})
        reranker = Reranker(llm)

        assert await reranker.rerank("q", []) == []
        llm.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reorders_by_model_score(self):
        a = candidate("A", 0.8)
        b = candidate("B", 0.75)
        llm = scoring_llm({"chunk A": "3", "chunk B": "9"})
        reranker = Reranker(llm, batch_delay=0)

        result = await reranker.rerank("When does it start?", [a, b])

        assert [c.chunk_id for c in result] == ["B", "A"]
        assert [c.rerank_score for c in result] == [9, 3]
        assert [c.similarity for c in result] == [0.75, 0.8]
        assert a.rerank_score is None

    @pytest.mark.asyncio
    async def test_ties_keep_incoming_order(self):
        candidates = [candidate(str(i), 0.9 - i / 100) for i in range(4)]
        llm = scoring_llm({"chunk 2": "8"})
        reranker = Reranker(llm, batch_delay=0)

        result = await reranker.rerank("q", candidates)

        assert [c.chunk_id for c in result] == ["2", "0", "1", "3"]

    @pytest.mark.asyncio
    async def test_prompt_and_options(self):
        llm = scoring_llm({})
        reranker = Reranker(llm, model="qwen2.5:14b")

        await reranker.rerank("Who speaks?", [candidate("A", 0.7)], "pl")

        prompt, options = llm.generate.await_args.args
        assert prompt.startswith('Oceń jak dobrze ten tekst odpowiada na pytanie "Who speaks?"')
        assert options is RERANK_OPTIONS
        assert llm.generate.await_args.kwargs["model"] == "qwen2.5:14b"

    def test_prompt_truncates_text(self):
        prompt = Reranker.build_prompt("q", "x" * 1000)
        assert "x" * PREVIEW_LENGTH + "..." in prompt
        assert "x" * (PREVIEW_LENGTH + 1) not in prompt

    @pytest.mark.asyncio
    @patch('services.reranker.asyncio.sleep', new_callable=AsyncMock)
    async def test_batches_pause_between_but_not_after(self, mock_sleep):
        candidates = [candidate(str(i), 0.9) for i in range(7)]
        reranker = Reranker(scoring_llm({}), batch_size=3, batch_delay=0.1)

        await reranker.rerank("q", candidates)

        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(0.1)

    @pytest.mark.asyncio
    async def test_at_most_batch_size_in_flight(self):
        in_flight = 0
        peak = 0

        async def generate(prompt, options=None, model=None):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return reply("5")

        llm = Mock()
        llm.generate = AsyncMock(side_effect=generate)
        reranker = Reranker(llm, batch_size=3, batch_delay=0)

        await reranker.rerank("q", [candidate(str(i), 0.9) for i in range(8)])

        assert llm.generate.await_count == 8
        assert peak == 3

    @pytest.mark.asyncio
    async def test_single_failure_scores_default(self):
        async def generate(prompt, options=None, model=None):
            if "chunk A" in prompt:
                raise LLMClientError(LLMError(code="BACKEND_UNAVAILABLE", message="down", details={}))
            if "chunk B" in prompt:
                return reply("2")
            return reply("9")

        llm = Mock()
        llm.generate = AsyncMock(side_effect=generate)
        reranker = Reranker(llm, batch_delay=0)

        result = await reranker.rerank("q", [candidate("A", 0.9), candidate("B", 0.8), candidate("C", 0.7)])

        assert [(c.chunk_id, c.rerank_score) for c in result] == [("C", 9), ("A", 5), ("B", 2)]

    @pytest.mark.asyncio
    async def test_whole_failure_returns_incoming_order(self):
        candidates = [candidate("A", 0.9), candidate("B", 0.8)]
        reranker = Reranker(scoring_llm({}), batch_delay=0)

        with patch.object(reranker, "_score", AsyncMock(side_effect=RuntimeError("boom"))):
            result = await reranker.rerank("q", candidates)

        assert result == candidates
        assert result is not candidates
