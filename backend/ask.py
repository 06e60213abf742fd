"""
Ask a question against the ingested conference documents.

Retrieves the most relevant chunks, builds the answer prompt and asks the
local chat model for an answer.

Usage:
    python ask.py "Where is the venue?" [--language pl] [--top-k 8] [--json-logs]
"""
import argparse
import asyncio
import sys
import logging
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from services.context import RAGContext
from services.llm_client import LLMClient, LLMClientError
from config import LOG_LEVEL
from logger import setup_logging

logger = logging.getLogger(__name__)


async def answer_question(context: RAGContext, question: str, language: str = "en", top_k: int = None) -> dict:
    """
    Retrieve sources and generate an answer.

    Returns:
        Dict with the answer, source filenames and per-source scores
    """
    candidates = await context.retrieval_engine.retrieve(question, top_k=top_k, language=language)

    if not candidates:
        return {
            "answer": LLMClient.no_documents_message(language),
            "sources": [],
            "documents_used": 0,
        }

    logger.info(f"Using {len(candidates)} documents for context")
    prompt = LLMClient.build_prompt(question, candidates, language)
    response = await context.llm_client.generate(prompt, LLMClient.answer_options())

    return {
        "answer": response.text.strip(),
        "sources": list(dict.fromkeys(c.filename for c in candidates)),
        "documents_used": len(candidates),
        "relevance_score": sum(c.similarity for c in candidates) / len(candidates),
        "top_similarities": [
            {
                "filename": c.filename,
                "similarity": f"{c.similarity * 100:.1f}%",
                "rerank_score": c.rerank_score if c.rerank_score is not None else "N/A",
            }
            for c in candidates[:3]
        ],
    }


async def run(question: str, language: str, top_k: int = None) -> dict:
    context = await RAGContext.connect()
    try:
        return await answer_question(context, question, language, top_k)
    finally:
        await context.aclose()


def main():
    parser = argparse.ArgumentParser(description="Ask the DataTalks assistant a question")
    parser.add_argument("question", help="Question to answer")
    parser.add_argument("--language", choices=["en", "pl"], default="en")
    parser.add_argument("--top-k", type=int, default=None)
    parser.add_argument("--json-logs", action="store_true", help="Emit structured JSON logs")
    args = parser.parse_args()

    if args.json_logs:
        setup_logging(LOG_LEVEL)

    try:
        result = asyncio.run(run(args.question, args.language, args.top_k))
    except LLMClientError as e:
        logger.error(f"Answer generation failed: {e.error.message}")
        sys.exit(2)
    except Exception as e:
        logger.error(f"Question failed: {str(e)}", exc_info=True)
        sys.exit(1)

    print(result["answer"])
    if result["sources"]:
        print("\nSources: " + ", ".join(result["sources"]))


if __name__ == "__main__":
    main()
