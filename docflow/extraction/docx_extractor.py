import io

from docx import Document as DocxDocument

from docflow.errors import ExtractionError
from docflow.extraction.base import BaseFormatExtractor


class DocxExtractor(BaseFormatExtractor):
    """Extracts paragraph and table text from Word documents with python-docx."""

    def extract(self, content: bytes) -> str:
        try:
            doc = DocxDocument(io.BytesIO(content))
        except Exception as exc:
            raise ExtractionError(f"DOCX parsing failed: {exc}") from exc
        lines = [paragraph.text for paragraph in doc.paragraphs]
        for table in doc.tables:
            for row in table.rows:
                lines.append("\t".join(cell.text for cell in row.cells))
        return "\n".join(lines).strip()
