"""
PDF processing service using pypdf.

Extracts the text layer of uploaded briefs. Extraction is best-effort:
scanned or malformed PDFs yield an empty string rather than an error.
"""

import io
import logging
from typing import BinaryIO

from pypdf import PdfReader
from pypdf.errors import PyPdfError

logger = logging.getLogger(__name__)


class PDFService:
    """
    Service for PDF text extraction.

    Uses pypdf to read the text layer page by page.
    """

    def __init__(self, page_separator: str = "\n\n", max_pages: int | None = None):
        """
        Initialize the PDF service.

        Args:
            page_separator: String placed between the text of consecutive pages.
            max_pages: Stop after this many pages. None reads every page.
        """
        self.page_separator = page_separator
        self.max_pages = max_pages

    def extract_text(self, file_bytes: bytes | BinaryIO) -> str:
        """
        Extract the text of a PDF.

        Args:
            file_bytes: PDF file as bytes or file-like object.

        Returns:
            The extracted text, or "" when the PDF is empty, invalid or has
            no text layer. Never raises.
        """
        # Ensure we have bytes
        if hasattr(file_bytes, "read"):
            pdf_bytes = file_bytes.read()
        else:
            pdf_bytes = file_bytes

        if not pdf_bytes:
            logger.warning("Empty PDF file provided")
            return ""

        try:
            reader = PdfReader(io.BytesIO(pdf_bytes))
            pages_text = []
            for index, page in enumerate(reader.pages):
                if self.max_pages is not None and index >= self.max_pages:
                    break
                page_text = page.extract_text()
                if page_text:
                    pages_text.append(page_text)

            text = self.page_separator.join(pages_text)
            logger.info(
                "Extracted %d characters from %d page(s)", len(text), len(reader.pages)
            )
            return text

        except PyPdfError as e:
            logger.warning("PDF text extraction failed: %s", e)
            return ""

        except Exception as e:
            # pypdf surfaces some corrupt-file conditions as generic errors
            logger.warning("Unexpected error during PDF text extraction: %s", e)
            return ""


# Singleton instance for convenience
_pdf_service: PDFService | None = None


def get_pdf_service() -> PDFService:
    """Get or create the PDF service singleton."""
    global _pdf_service
    if _pdf_service is None:
        _pdf_service = PDFService()
    return _pdf_service
