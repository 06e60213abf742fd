"""Topic-aware chunking engine for conference documents."""
import logging
import re
from typing import Dict, List, Tuple

from models.chunk import Chunk
from config import CHUNK_SIZE, CHUNK_OVERLAP

logger = logging.getLogger(__name__)

# Declaration order breaks ties between equally scored topics
TOPIC_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "speakers": ("speaker", "presenter", "talk", "presentation", "prelegent", "wykład", "prezentacja"),
    "schedule": ("time", "agenda", "program", "when", "czas", "harmonogram", "kiedy", "godzina"),
    "location": ("where", "venue", "address", "place", "gdzie", "miejsce", "adres", "lokalizacja", "browary"),
    "registration": ("register", "badge", "check-in", "rejestracja", "identyfikator", "odbiór"),
    "workshops": ("workshop", "training", "warsztat", "szkolenie", "warsztaty"),
    "networking": ("networking", "cocktail", "break", "przerwa", "spotkanie", "koktajl"),
}

GENERAL_TOPIC = "general"
SENTENCE_DELIMITERS = re.compile(r"[.!?]+")
MIN_SENTENCE_LENGTH = 10
TOPIC_SPLIT_MIN_LENGTH = 200


class ChunkingEngine:
    """Segments document text into topic-coherent, size-bounded chunks with overlap."""

    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Maximum chunk size in characters
            chunk_overlap: Overlap budget in characters; carried over as
                chunk_overlap // 10 trailing words of the previous chunk
        """
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    @staticmethod
    def extract_topics(text: str) -> List[str]:
        """
        Rank keyword families by how many of their keywords occur in text.

        Args:
            text: Sentence or passage to classify

        Returns:
            Topic names with at least one hit, best first
        """
        lower_text = text.lower()
        scored = []
        for topic, keywords in TOPIC_KEYWORDS.items():
            score = sum(1 for keyword in keywords if keyword in lower_text)
            if score > 0:
                scored.append((topic, score))

        # sorted() is stable, so equal scores keep declaration order
        scored = sorted(scored, key=lambda item: item[1], reverse=True)
        return [topic for topic, _ in scored]

    @classmethod
    def dominant_topic(cls, text: str) -> str:
        topics = cls.extract_topics(text)
        return topics[0] if topics else GENERAL_TOPIC

    @staticmethod
    def split_sentences(text: str) -> List[str]:
        """Split on sentence punctuation, dropping fragments of 10 characters or fewer."""
        return [
            fragment.strip()
            for fragment in SENTENCE_DELIMITERS.split(text)
            if len(fragment.strip()) > MIN_SENTENCE_LENGTH
        ]

    def chunk_with_metadata(
        self,
        text: str,
        max_size: int = None,
        overlap: int = None
    ) -> List[Chunk]:
        """
        Chunk text and keep each chunk's topic and position.

        Args:
            text: Cleaned document text
            max_size: Maximum chunk size in characters (defaults to chunk_size)
            overlap: Overlap budget in characters (defaults to chunk_overlap)

        Returns:
            Ordered list of Chunk objects
        """
        max_size = self.chunk_size if max_size is None else max_size
        overlap = self.chunk_overlap if overlap is None else overlap
        overlap_word_count = max(0, overlap // 10)

        chunks: List[Chunk] = []
        current_chunk = ""
        current_topic = ""

        for sentence in self.split_sentences(text or ""):
            new_topic = self.dominant_topic(sentence)

            should_split = (
                (new_topic != current_topic and len(current_chunk) > TOPIC_SPLIT_MIN_LENGTH)
                or len(current_chunk) + len(sentence) > max_size
            )

            if should_split and current_chunk.strip():
                chunks.append(Chunk(
                    text=current_chunk.strip(),
                    topic=current_topic,
                    position=len(chunks)
                ))

                current_chunk = self._overlap_prefix(current_chunk, overlap_word_count) + sentence
                current_topic = new_topic
            else:
                current_chunk += (" " if current_chunk else "") + sentence
                if not current_topic:
                    current_topic = new_topic

        if current_chunk.strip():
            chunks.append(Chunk(
                text=current_chunk.strip(),
                topic=current_topic,
                position=len(chunks)
            ))

        if chunks:
            topics = sorted({chunk.topic for chunk in chunks})
            logger.info(f"Semantic chunking: {len(chunks)} chunks, topics: {', '.join(topics)}")
        return chunks

    def chunk_text(self, text: str, max_size: int = None, overlap: int = None) -> List[str]:
        """
        Chunk text into passages.

        Args:
            text: Cleaned document text
            max_size: Maximum chunk size in characters
            overlap: Overlap budget in characters

        Returns:
            Ordered chunk texts; empty for blank input
        """
        return [chunk.text for chunk in self.chunk_with_metadata(text, max_size, overlap)]

    @staticmethod
    def _overlap_prefix(previous_chunk: str, word_count: int) -> str:
        if word_count <= 0:
            return ""
        words = previous_chunk.split(" ")
        return " ".join(words[-word_count:]) + " "
