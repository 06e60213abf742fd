"""Document data models."""
from dataclasses import dataclass, field
from typing import List


@dataclass
class Page:
    """Represents a single page from a PDF file."""
    page_number: int
    text: str
    word_count: int


@dataclass
class SourceDocument:
    """Represents a loaded PDF file before ingestion."""
    filename: str
    pages: List[Page]
    total_pages: int

    @property
    def text(self) -> str:
        return "\n".join(page.text for page in self.pages)


@dataclass(frozen=True)
class Document:
    """Ingested document as persisted in the vector store."""
    id: str
    filename: str
    full_text: str
    chunk_texts: List[str] = field(default_factory=list)
