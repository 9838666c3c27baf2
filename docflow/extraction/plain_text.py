from docflow.errors import UnsupportedFileTypeError
from docflow.extraction.base import BaseFormatExtractor


class PlainTextExtractor(BaseFormatExtractor):
    """Decodes text files as UTF-8, falling back to Latin-1."""

    def extract(self, content: bytes) -> str:
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError:
            return content.decode("latin-1")


class BestEffortTextExtractor(BaseFormatExtractor):
    """Strict UTF-8 decode for unknown extensions; fails loudly on binary data."""

    def __init__(self, extension: str) -> None:
        self._extension = extension

    def extract(self, content: bytes) -> str:
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise UnsupportedFileTypeError(
                f"Unsupported file type: {self._extension or 'unknown'}"
            ) from exc
        if "\x00" in text:
            raise UnsupportedFileTypeError(
                f"Unsupported file type: {self._extension or 'unknown'}"
            )
        return text
