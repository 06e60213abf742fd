"""Data models for the DataTalks RAG assistant."""
from .document import Document, Page, SourceDocument
from .chunk import Chunk, StoredEmbedding, ScoredCandidate

__all__ = [
    "Document",
    "Page",
    "SourceDocument",
    "Chunk",
    "StoredEmbedding",
    "ScoredCandidate",
]
