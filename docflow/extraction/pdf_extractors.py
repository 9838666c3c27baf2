import io

import pdfplumber
import pymupdf

from docflow.errors import ExtractionError
from docflow.extraction.base import BaseFormatExtractor


class PdfPlumberExtractor(BaseFormatExtractor):
    """Extracts PDF text page by page with pdfplumber."""

    def extract(self, content: bytes) -> str:
        try:
            with pdfplumber.open(io.BytesIO(content)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except Exception as exc:
            raise ExtractionError(f"PDF parsing failed (pdfplumber): {exc}") from exc
        return "\n".join(pages).strip()


class PyMuPdfExtractor(BaseFormatExtractor):
    """Extracts PDF text page by page with PyMuPDF."""

    def extract(self, content: bytes) -> str:
        try:
            with pymupdf.open(stream=content, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                pages = [page.get_text() for page in doc]
        except Exception as exc:
            raise ExtractionError(f"PDF parsing failed (pymupdf): {exc}") from exc
        return "\n".join(pages).strip()
