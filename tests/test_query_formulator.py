"""Unit tests for QueryFormulator."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import AsyncMock, Mock
from services.llm_client import LLMResponse, LLMClientError, LLMError
from services.query_formulator import (
    QueryFormulator, EXPANSION_OPTIONS, HYDE_OPTIONS, MAX_EXPANSIONS
)


def reply(text):
    return LLMResponse(text=text, tokens_input=0, tokens_output=0, latency_ms=1, model_used="m")


def backend_error():
    return LLMClientError(LLMError(code="BACKEND_UNAVAILABLE", message="down", details={}))


@pytest.fixture
def mock_llm():
    llm = Mock()
    llm.generate = AsyncMock()
    return llm


class TestFormulate:
    """Variant assembly."""

    @pytest.mark.asyncio
    async def test_no_toggles_returns_original_only(self, mock_llm):
        formulator = QueryFormulator(mock_llm)

        assert await formulator.formulate("Where is the venue?") == ["Where is the venue?"]
        mock_llm.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expansion_leads_with_original(self, mock_llm):
        mock_llm.generate.return_value = reply("venue address, conference location, how to get there")
        formulator = QueryFormulator(mock_llm, use_query_expansion=True)

        variants = await formulator.formulate("Where is the venue?")

        assert variants == [
            "Where is the venue?",
            "venue address",
            "conference location",
            "how to get there",
        ]
        prompt, options = mock_llm.generate.await_args.args
        assert "Original question: Where is the venue?" in prompt
        assert options is EXPANSION_OPTIONS

    @pytest.mark.asyncio
    async def test_expansion_is_capped(self, mock_llm):
        mock_llm.generate.return_value = reply(
            "phrase one, phrase two; phrase three\nphrase four, phrase five, phrase six"
        )
        formulator = QueryFormulator(mock_llm, use_query_expansion=True)

        variants = await formulator.formulate("q")

        assert len(variants) == 1 + MAX_EXPANSIONS
        assert variants[-1] == "phrase four"

    @pytest.mark.asyncio
    async def test_expansion_failure_returns_original(self, mock_llm):
        mock_llm.generate.side_effect = backend_error()
        formulator = QueryFormulator(mock_llm, use_query_expansion=True)

        assert await formulator.formulate("q") == ["q"]

    @pytest.mark.asyncio
    async def test_polish_expansion_prompt(self, mock_llm):
        mock_llm.generate.return_value = reply("")
        formulator = QueryFormulator(mock_llm, use_query_expansion=True)

        await formulator.formulate("Gdzie jest konferencja?", "pl")

        prompt = mock_llm.generate.await_args.args[0]
        assert prompt.startswith("Rozszerz")
        assert "Gdzie jest konferencja?" in prompt

    @pytest.mark.asyncio
    async def test_hyde_document_appended(self, mock_llm):
        mock_llm.generate.return_value = reply("  The conference takes place at Browary Warszawskie.  ")
        formulator = QueryFormulator(mock_llm, use_hyde=True, model="qwen2.5:14b")

        variants = await formulator.formulate("Where?")

        assert variants == ["Where?", "The conference takes place at Browary Warszawskie."]
        assert mock_llm.generate.await_args.args[1] is HYDE_OPTIONS
        assert mock_llm.generate.await_args.kwargs["model"] == "qwen2.5:14b"

    @pytest.mark.asyncio
    async def test_hyde_failure_is_skipped(self, mock_llm):
        mock_llm.generate.side_effect = backend_error()
        formulator = QueryFormulator(mock_llm, use_hyde=True)

        assert await formulator.formulate("Where?") == ["Where?"]

    @pytest.mark.asyncio
    async def test_blank_hyde_is_skipped(self, mock_llm):
        mock_llm.generate.return_value = reply("   \n ")
        formulator = QueryFormulator(mock_llm, use_hyde=True)

        assert await formulator.formulate("Where?") == ["Where?"]

    @pytest.mark.asyncio
    async def test_expansion_then_hyde_order(self, mock_llm):
        mock_llm.generate.side_effect = [
            reply("venue address, event location"),
            reply("DataTalks happens at Browary Warszawskie."),
        ]
        formulator = QueryFormulator(mock_llm, use_query_expansion=True, use_hyde=True)

        variants = await formulator.formulate("Where?")

        assert variants == [
            "Where?",
            "venue address",
            "event location",
            "DataTalks happens at Browary Warszawskie.",
        ]
        assert mock_llm.generate.await_count == 2


class TestParseExpansions:
    """Phrase filtering."""

    def test_length_bounds(self):
        text = ", ".join(["a" * 5, "b" * 6, "c" * 99, "d" * 100])
        assert QueryFormulator.parse_expansions(text) == ["b" * 6, "c" * 99]

    def test_separators_and_whitespace(self):
        text = "  keynote talks ;\n  speaker list  ,\n\n"
        assert QueryFormulator.parse_expansions(text) == ["keynote talks", "speaker list"]

    def test_empty(self):
        assert QueryFormulator.parse_expansions("") == []
        assert QueryFormulator.parse_expansions(None) == []
