"""Configuration management for the DataTalks RAG assistant."""
import os
import logging
from dataclasses import dataclass
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() == "true"


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, ""))
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, ""))
    except ValueError:
        return default


# Storage
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Ollama
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_TIMEOUT = _env_float("OLLAMA_TIMEOUT", 120.0)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Model Configuration
EMBEDDING_MODEL = "mxbai-embed-large"
CHAT_MODEL = os.getenv("OLLAMA_CHAT_MODEL", "qwen2.5:14b")

# Chunking Configuration
CHUNK_SIZE = _env_int("CHUNK_SIZE", 800)  # characters
CHUNK_OVERLAP = _env_int("CHUNK_OVERLAP", 150)  # characters, carried as overlap // 10 words

# Retrieval Configuration
USE_HYDE = _env_flag("RAG_USE_HYDE")
USE_QUERY_EXPANSION = _env_flag("RAG_USE_QUERY_EXPANSION")
USE_RERANKING = _env_flag("RAG_USE_RERANKING")
SIMILARITY_THRESHOLD = _env_float("RAG_SIMILARITY_THRESHOLD", 0.6) or 0.6
TOP_K = _env_int("RAG_TOP_K", 8) or 8

# Reranking Configuration
RERANK_BATCH_SIZE = _env_int("RERANK_BATCH_SIZE", 3)
RERANK_BATCH_DELAY = _env_float("RERANK_BATCH_DELAY", 0.1)  # seconds

# Ingestion
UPLOADS_DIR = os.getenv("UPLOADS_DIR", "uploads")


@dataclass
class RetrievalSettings:
    """Retrieval toggles handed to the pipeline instead of read from globals."""
    use_hyde: bool = USE_HYDE
    use_query_expansion: bool = USE_QUERY_EXPANSION
    use_reranking: bool = USE_RERANKING
    similarity_threshold: float = SIMILARITY_THRESHOLD
    top_k: int = TOP_K
    chat_model_name: str = CHAT_MODEL
    embedding_model_name: str = EMBEDDING_MODEL


# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
