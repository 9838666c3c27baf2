from docflow.config.settings import Settings
from docflow.extraction.base import BaseFormatExtractor
from docflow.extraction.pdf_extractors import PdfPlumberExtractor, PyMuPdfExtractor
from docflow.extraction.text_extractor import TextExtractor


class TextExtractorFactory:
    """Creates the TextExtractor with the configured PDF engine."""

    PDF_ENGINES: dict[str, type[BaseFormatExtractor]] = {
        "pdfplumber": PdfPlumberExtractor,
        "pymupdf": PyMuPdfExtractor,
    }

    @classmethod
    def create(cls, settings: Settings) -> TextExtractor:
        engine = settings.pdf_engine.lower()
        pdf_cls = cls.PDF_ENGINES.get(engine)
        if pdf_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.PDF_ENGINES)}"
            )
        return TextExtractor(pdf_extractor=pdf_cls())
