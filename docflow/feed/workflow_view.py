"""Live mirror of one project's documents, fed by the change topic."""

import json
import threading
from dataclasses import replace
from types import TracebackType
from typing import Any

from docflow.feed.models import AggregateCounts, ChangeEvent
from docflow.feed.topic import Subscription, Topic
from docflow.logging.logger import Log
from docflow.store.base import BaseStatusStore
from docflow.store.models import (
    DocumentRecord,
    DocumentStatus,
    ProcessingStage,
    extracted_data_to_payload,
)

STAGE_DURATION_ESTIMATES: dict[ProcessingStage, str] = {
    ProcessingStage.TEXT_EXTRACTION: "15-30s",
    ProcessingStage.DATA_EXTRACTION: "15-30s",
    ProcessingStage.FULL_ANALYSIS: "60-90s",
}


def estimated_duration(stage: ProcessingStage) -> str:
    """Rough processing time shown to observers while a document is in flight."""
    return STAGE_DURATION_ESTIMATES[stage]


class WorkflowView:
    """Eventually-consistent mirror of the documents of one project.

    The mirror is seeded by one full read and then kept current by change
    events; counts are adjusted per event, never rescanned. Events carrying
    a version not newer than the mirrored one are ignored, so redelivery
    and reordering cannot corrupt the counts. The mirror is never used for
    write decisions.
    """

    def __init__(self, store: BaseStatusStore, topic: Topic, project_id: str) -> None:
        self._store = store
        self._topic = topic
        self.project_id = project_id
        self._lock = threading.RLock()
        self._documents: dict[str, DocumentRecord] = {}
        self._counts = AggregateCounts()
        self._subscription: Subscription | None = None

    @property
    def active(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def activate(self) -> None:
        """Subscribe to changes, then seed the mirror from the store."""
        if self.active:
            return
        with self._lock:
            # Subscribe first so nothing committed during the seed read is lost;
            # events wait on the lock and are version-checked afterwards.
            self._subscription = self._topic.subscribe(self.project_id, self._on_event)
            self._seed()
        Log.info(
            f"Workflow view for project {self.project_id} active: "
            f"{self._counts.total} documents"
        )

    def deactivate(self) -> None:
        """Release the subscription."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def __enter__(self) -> "WorkflowView":
        self.activate()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.deactivate()

    @property
    def counts(self) -> AggregateCounts:
        with self._lock:
            return replace(self._counts)

    def get(self, document_id: str) -> DocumentRecord | None:
        with self._lock:
            record = self._documents.get(document_id)
            return replace(record) if record is not None else None

    def items(
        self,
        status: DocumentStatus | None = None,
        search: str = "",
    ) -> list[DocumentRecord]:
        """Mirrored documents, newest first, filtered by status and file name."""
        needle = search.strip().lower()
        with self._lock:
            rows = [
                replace(r)
                for r in self._documents.values()
                if (status is None or r.status == status)
                and (not needle or needle in r.file_name.lower())
            ]
        return sorted(
            rows,
            key=lambda r: r.uploaded_at.timestamp() if r.uploaded_at else 0.0,
            reverse=True,
        )

    def can_retry(self, document_id: str) -> bool:
        record = self.get(document_id)
        return record is not None and record.status == DocumentStatus.ERROR

    def reconcile(self) -> AggregateCounts:
        """Rebuild the mirror from the store and return the fresh counts."""
        with self._lock:
            self._seed()
            return replace(self._counts)

    def export(self, document_id: str) -> tuple[str, str]:
        """Build the JSON export of one document.

        Returns:
            (suggested file name, JSON text)

        Raises:
            KeyError: if the document is not mirrored.
        """
        record = self.get(document_id)
        if record is None:
            raise KeyError(document_id)
        payload: dict[str, Any] = {
            "fileName": record.file_name,
            "processingStage": record.processing_stage.value,
            "processedAt": record.processed_at.isoformat() if record.processed_at else None,
            "extractedText": record.extracted_text,
            "extractedData": extracted_data_to_payload(record.extracted_data),
        }
        return f"{record.title}_extracted.json", json.dumps(payload, indent=2)

    def _seed(self) -> None:
        rows = self._store.list_by_project(self.project_id)
        self._documents = {row.id: row for row in rows}
        counts = AggregateCounts()
        for row in rows:
            counts.add(row.status)
        self._counts = counts

    def _on_event(self, event: ChangeEvent) -> None:
        incoming = event.document
        if incoming.project_id != self.project_id:
            return
        with self._lock:
            current = self._documents.get(incoming.id)
            if current is None:
                self._documents[incoming.id] = incoming
                self._counts.add(incoming.status)
            elif incoming.version > current.version:
                self._documents[incoming.id] = incoming
                self._counts.move(current.status, incoming.status)
            else:
                Log.debug(
                    f"Ignoring stale event for document {incoming.id} "
                    f"(v{incoming.version} <= v{current.version})"
                )
