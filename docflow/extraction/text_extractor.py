from docflow.errors import ExtractionError
from docflow.extraction.base import BaseFormatExtractor
from docflow.extraction.docx_extractor import DocxExtractor
from docflow.extraction.plain_text import BestEffortTextExtractor, PlainTextExtractor
from docflow.logging.logger import Log
from docflow.storage.file_storage import file_extension


class TextExtractor:
    """Selects an extraction strategy from the file extension.

    PDF and DOCX go through dedicated parsers, ``.txt`` is decoded directly,
    and any other extension gets a strict best-effort decode.
    """

    def __init__(
        self,
        pdf_extractor: BaseFormatExtractor,
        docx_extractor: BaseFormatExtractor | None = None,
        plain_text_extractor: BaseFormatExtractor | None = None,
    ) -> None:
        self._strategies: dict[str, BaseFormatExtractor] = {
            "pdf": pdf_extractor,
            "docx": docx_extractor or DocxExtractor(),
            "txt": plain_text_extractor or PlainTextExtractor(),
        }

    def strategy_for(self, file_name: str) -> BaseFormatExtractor:
        ext = file_extension(file_name)
        return self._strategies.get(ext) or BestEffortTextExtractor(ext)

    def extract(self, file_name: str, content: bytes) -> str:
        """Extract text from a document.

        Raises:
            UnsupportedFileTypeError: if the bytes cannot be decoded at all.
            ExtractionError: if parsing fails or yields no text.
        """
        strategy = self.strategy_for(file_name)
        Log.debug(f"Extracting {file_name} with {type(strategy).__name__}")
        text = strategy.extract(content)
        if not text.strip():
            raise ExtractionError(f"No text could be extracted from {file_name}")
        return text
