"""PDF discovery and text extraction for the uploads directory."""
import logging
import os
from typing import List
import fitz  # PyMuPDF

from models.document import Page, SourceDocument
from config import UPLOADS_DIR

logger = logging.getLogger(__name__)


class DocumentLoader:
    """Finds PDFs in the uploads directory and extracts their text."""

    def __init__(self, docs_directory: str = UPLOADS_DIR):
        """
        Relative paths resolve against the current working directory.

        Args:
            docs_directory: Uploads directory scanned for conference PDFs
        """
        self.docs_directory = docs_directory

    def list_pdfs(self) -> List[str]:
        """
        List PDF filenames in the documents directory, sorted.

        The directory is created when missing, so an empty knowledge base
        is a valid starting state.
        """
        if not os.path.exists(self.docs_directory):
            os.makedirs(self.docs_directory)
            logger.info(f"Created uploads directory: {self.docs_directory}")
            return []

        pdf_files = sorted(
            f for f in os.listdir(self.docs_directory) if f.lower().endswith('.pdf')
        )
        logger.info(f"Found {len(pdf_files)} PDF files in {self.docs_directory}")
        return pdf_files

    def load_pdf(self, filename: str) -> SourceDocument:
        """
        Extract text page-by-page from one PDF in the documents directory.

        Args:
            filename: Name of the file inside docs_directory

        Returns:
            SourceDocument with one Page per PDF page
        """
        filepath = os.path.join(self.docs_directory, filename)

        try:
            pdf_document = fitz.open(filepath)
            pages = []

            for page_num in range(len(pdf_document)):
                text = pdf_document[page_num].get_text()
                pages.append(Page(
                    page_number=page_num + 1,  # 1-indexed
                    text=text,
                    word_count=len(text.split())
                ))

            pdf_document.close()

            return SourceDocument(
                filename=filename,
                pages=pages,
                total_pages=len(pages)
            )

        except Exception as e:
            logger.error(f"Failed to load PDF {filename}: {str(e)}")
            raise
