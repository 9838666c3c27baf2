from abc import ABC, abstractmethod
from collections.abc import Collection
from datetime import datetime

from docflow.store.models import (
    DocumentRecord,
    DocumentStatus,
    ExtractedData,
    ProcessingStage,
    SourceKind,
)


class BaseStatusStore(ABC):
    """Contract for the authoritative document status store.

    Every write is an atomic row update that bumps ``version`` and is
    announced on the change feed.
    """

    @abstractmethod
    def create(
        self,
        *,
        project_id: str,
        file_name: str,
        processing_stage: ProcessingStage,
        source_kind: SourceKind = SourceKind.MANUAL_UPLOAD,
        source_reference: str | None = None,
        extraction_template: dict[str, str] | None = None,
    ) -> DocumentRecord:
        """Insert a new document in ``pending`` and return it with its id."""

    @abstractmethod
    def get(self, document_id: str) -> DocumentRecord:
        """Fetch one document.

        Raises:
            DocumentNotFoundError: if no document with this id exists.
        """

    @abstractmethod
    def list_by_project(self, project_id: str) -> list[DocumentRecord]:
        """All documents of a project, newest first."""

    @abstractmethod
    def begin_attempt(
        self,
        document_id: str,
        source_reference: str | None = None,
    ) -> DocumentRecord:
        """Acknowledge a dispatcher attempt.

        Moves the row to ``processing``, increments ``processing_attempts``,
        clears ``error_message``, and records the source reference if given.
        """

    @abstractmethod
    def mark_completed(
        self,
        document_id: str,
        extracted_text: str,
        extracted_data: ExtractedData | None,
    ) -> DocumentRecord:
        """Write a successful terminal result and stamp ``processed_at``.

        Raises:
            ValueError: if the text is empty or data is given for a
                text-only document.
        """

    @abstractmethod
    def mark_failed(
        self,
        document_id: str,
        error_message: str,
        *,
        only_if_status: Collection[DocumentStatus] | None = None,
    ) -> DocumentRecord | None:
        """Move the row to ``error`` with a message.

        ``processing_attempts`` is raised to at least 1. When
        ``only_if_status`` is given the update only applies to rows in one of
        those statuses; returns None when nothing was updated.
        """

    @abstractmethod
    def reset_for_retry(
        self,
        document_id: str,
        expected_attempts: int | None = None,
    ) -> DocumentRecord | None:
        """Compare-and-set ``error -> processing`` for a retry attempt.

        Increments ``processing_attempts`` and clears the error message.

        Returns None when the row is no longer in ``error`` (or its attempt
        count differs from ``expected_attempts``).
        """

    @abstractmethod
    def reclaim_stale(self, older_than: datetime, error_message: str) -> list[DocumentRecord]:
        """Fail every ``processing`` row not updated since ``older_than``."""


def validate_completion(
    record: DocumentRecord,
    extracted_text: str,
    extracted_data: ExtractedData | None,
) -> None:
    """Enforce the invariants of a completed document before writing it."""
    if not extracted_text or not extracted_text.strip():
        raise ValueError(f"Document {record.id}: completed documents need extracted text")
    if extracted_data is not None and record.processing_stage == ProcessingStage.TEXT_EXTRACTION:
        raise ValueError(
            f"Document {record.id}: text_extraction documents cannot carry extracted data"
        )


def validate_failure_message(error_message: str) -> None:
    if not error_message or not error_message.strip():
        raise ValueError("error_message must be a non-empty string")
