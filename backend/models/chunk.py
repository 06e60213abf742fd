"""Chunk, embedding and retrieval-candidate data models."""
from dataclasses import dataclass
from typing import Optional
import numpy as np


@dataclass
class Chunk:
    """Topic-tagged passage produced by the chunking engine."""
    text: str
    topic: str  # "general" when no keyword family matched
    position: int  # index within the source document


@dataclass
class StoredEmbedding:
    """Embedding row joined with its parent document's filename."""
    id: str
    document_id: str
    chunk_text: str
    embedding: Optional[np.ndarray]  # None when the stored vector failed to parse
    chunk_index: int
    filename: str = ""


@dataclass
class ScoredCandidate:
    """Stored chunk with similarity (and optional rerank) scores from retrieval."""
    record: StoredEmbedding
    similarity: float
    query_used: str
    rerank_score: Optional[int] = None  # 1 to 10 once reranked

    @property
    def chunk_id(self) -> str:
        return self.record.id

    @property
    def chunk_text(self) -> str:
        return self.record.chunk_text

    @property
    def filename(self) -> str:
        return self.record.filename
