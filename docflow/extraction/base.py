from abc import ABC, abstractmethod


class BaseFormatExtractor(ABC):
    """Contract for format-specific text extraction adapters."""

    @abstractmethod
    def extract(self, content: bytes) -> str:
        """Extract plain text from raw file bytes.

        Args:
            content: Raw file content.

        Returns:
            Extracted text as a single string.

        Raises:
            ExtractionError: if extraction fails for any reason.
        """
