import threading
import uuid
from collections.abc import Collection
from dataclasses import replace
from datetime import datetime, timezone

from docflow.errors import DocumentNotFoundError
from docflow.feed.models import ChangeEvent, ChangeKind
from docflow.feed.topic import Topic
from docflow.store.base import BaseStatusStore, validate_completion, validate_failure_message
from docflow.store.models import (
    DocumentRecord,
    DocumentStatus,
    ExtractedData,
    ProcessingStage,
    SourceKind,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryStatusStore(BaseStatusStore):
    """Thread-safe status store kept in process memory.

    Used for local runs and tests. Changes are published straight to the
    given Topic after each write.
    """

    def __init__(self, topic: Topic | None = None) -> None:
        self._topic = topic
        self._lock = threading.Lock()
        self._rows: dict[str, DocumentRecord] = {}

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
        now = _now()
        record = DocumentRecord(
            id=str(uuid.uuid4()),
            project_id=project_id,
            file_name=file_name,
            processing_stage=processing_stage,
            source_kind=source_kind,
            source_reference=source_reference,
            extraction_template=dict(extraction_template) if extraction_template else None,
            uploaded_at=now,
            updated_at=now,
        )
        with self._lock:
            self._rows[record.id] = record
            snapshot = replace(record)
        self._publish(ChangeKind.INSERT, snapshot)
        return snapshot

    def get(self, document_id: str) -> DocumentRecord:
        with self._lock:
            return replace(self._require(document_id))

    def list_by_project(self, project_id: str) -> list[DocumentRecord]:
        with self._lock:
            rows = [replace(r) for r in self._rows.values() if r.project_id == project_id]
        return sorted(rows, key=lambda r: r.uploaded_at or _now(), reverse=True)

    def begin_attempt(
        self,
        document_id: str,
        source_reference: str | None = None,
    ) -> DocumentRecord:
        with self._lock:
            record = self._require(document_id)
            record.status = DocumentStatus.PROCESSING
            record.processing_attempts += 1
            record.error_message = None
            if source_reference is not None:
                record.source_reference = source_reference
            snapshot = self._touch(record)
        self._publish(ChangeKind.UPDATE, snapshot)
        return snapshot

    def mark_completed(
        self,
        document_id: str,
        extracted_text: str,
        extracted_data: ExtractedData | None,
    ) -> DocumentRecord:
        with self._lock:
            record = self._require(document_id)
            validate_completion(record, extracted_text, extracted_data)
            record.status = DocumentStatus.COMPLETED
            record.extracted_text = extracted_text
            record.extracted_data = extracted_data
            record.error_message = None
            record.processed_at = _now()
            snapshot = self._touch(record)
        self._publish(ChangeKind.UPDATE, snapshot)
        return snapshot

    def mark_failed(
        self,
        document_id: str,
        error_message: str,
        *,
        only_if_status: Collection[DocumentStatus] | None = None,
    ) -> DocumentRecord | None:
        validate_failure_message(error_message)
        with self._lock:
            record = self._require(document_id)
            if only_if_status is not None and record.status not in only_if_status:
                return None
            record.status = DocumentStatus.ERROR
            record.error_message = error_message
            record.processing_attempts = max(record.processing_attempts, 1)
            snapshot = self._touch(record)
        self._publish(ChangeKind.UPDATE, snapshot)
        return snapshot

    def reset_for_retry(
        self,
        document_id: str,
        expected_attempts: int | None = None,
    ) -> DocumentRecord | None:
        with self._lock:
            record = self._require(document_id)
            if record.status != DocumentStatus.ERROR:
                return None
            if expected_attempts is not None and record.processing_attempts != expected_attempts:
                return None
            record.status = DocumentStatus.PROCESSING
            record.processing_attempts += 1
            record.error_message = None
            snapshot = self._touch(record)
        self._publish(ChangeKind.UPDATE, snapshot)
        return snapshot

    def reclaim_stale(self, older_than: datetime, error_message: str) -> list[DocumentRecord]:
        validate_failure_message(error_message)
        reclaimed: list[DocumentRecord] = []
        with self._lock:
            for record in self._rows.values():
                if record.status != DocumentStatus.PROCESSING:
                    continue
                if record.updated_at is not None and record.updated_at >= older_than:
                    continue
                record.status = DocumentStatus.ERROR
                record.error_message = error_message
                record.processing_attempts = max(record.processing_attempts, 1)
                reclaimed.append(self._touch(record))
        for snapshot in reclaimed:
            self._publish(ChangeKind.UPDATE, snapshot)
        return reclaimed

    def _require(self, document_id: str) -> DocumentRecord:
        record = self._rows.get(document_id)
        if record is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return record

    @staticmethod
    def _touch(record: DocumentRecord) -> DocumentRecord:
        record.version += 1
        record.updated_at = _now()
        return replace(record)

    def _publish(self, kind: ChangeKind, snapshot: DocumentRecord) -> None:
        if self._topic is not None:
            self._topic.publish(snapshot.project_id, ChangeEvent(kind=kind, document=snapshot))
