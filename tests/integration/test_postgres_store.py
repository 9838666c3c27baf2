from datetime import datetime, timedelta, timezone

import pytest

from docflow.errors import DocumentNotFoundError
from docflow.store.models import (
    NON_TERMINAL_STATUSES,
    DocumentRecord,
    DocumentStatus,
    ProcessingStage,
    RawUnparsedData,
    SourceKind,
    StructuredData,
)
from docflow.store.postgres_store import PostgresStatusStore


def _create(
    store: PostgresStatusStore,
    project_id: str,
    stage: ProcessingStage = ProcessingStage.TEXT_EXTRACTION,
) -> DocumentRecord:
    return store.create(project_id=project_id, file_name="paper.pdf", processing_stage=stage)


@pytest.mark.integration
class TestPostgresStatusStoreCreate:
    def test_create_returns_pending_row(self, store: PostgresStatusStore, project_id: str) -> None:
        record = store.create(
            project_id=project_id,
            file_name="paper.pdf",
            processing_stage=ProcessingStage.DATA_EXTRACTION,
            source_kind=SourceKind.IMPORTED_RECORD,
            source_reference="https://example.org/paper.pdf",
            extraction_template={"n": "number"},
        )
        assert record.status == DocumentStatus.PENDING
        assert record.version == 1
        fetched = store.get(record.id)
        assert fetched.extraction_template == {"n": "number"}
        assert fetched.source_kind == SourceKind.IMPORTED_RECORD

    def test_list_by_project(self, store: PostgresStatusStore, project_id: str) -> None:
        first = _create(store, project_id)
        second = _create(store, project_id)
        ids = [r.id for r in store.list_by_project(project_id)]
        assert set(ids) == {first.id, second.id}

    def test_get_unknown_raises(self, store: PostgresStatusStore) -> None:
        with pytest.raises(DocumentNotFoundError):
            store.get("00000000-0000-0000-0000-000000000000")


@pytest.mark.integration
class TestPostgresStatusStoreTransitions:
    def test_full_lifecycle(self, store: PostgresStatusStore, project_id: str) -> None:
        record = _create(store, project_id, ProcessingStage.DATA_EXTRACTION)
        started = store.begin_attempt(record.id, "local:p/x.pdf")
        assert started.status == DocumentStatus.PROCESSING
        assert started.processing_attempts == 1
        done = store.mark_completed(record.id, "text", StructuredData(value={"n": 1}))
        assert done.status == DocumentStatus.COMPLETED
        assert done.processed_at is not None
        assert store.get(record.id).extracted_data == StructuredData(value={"n": 1})
        assert done.version == 3

    def test_raw_unparsed_round_trips(self, store: PostgresStatusStore, project_id: str) -> None:
        record = _create(store, project_id, ProcessingStage.DATA_EXTRACTION)
        store.begin_attempt(record.id)
        store.mark_completed(record.id, "text", RawUnparsedData(text="oops"))
        assert store.get(record.id).extracted_data == RawUnparsedData(text="oops")

    def test_mark_failed_sets_attempts(self, store: PostgresStatusStore, project_id: str) -> None:
        record = _create(store, project_id)
        failed = store.mark_failed(record.id, "Upload failed")
        assert failed is not None
        assert failed.processing_attempts == 1
        assert failed.error_message == "Upload failed"

    def test_guarded_mark_failed_skips_completed(self, store: PostgresStatusStore, project_id: str) -> None:
        record = _create(store, project_id)
        store.begin_attempt(record.id)
        store.mark_completed(record.id, "text", None)
        assert store.mark_failed(record.id, "late", only_if_status=NON_TERMINAL_STATUSES) is None
        assert store.get(record.id).status == DocumentStatus.COMPLETED

    def test_reset_for_retry_is_compare_and_set(self, store: PostgresStatusStore, project_id: str) -> None:
        record = _create(store, project_id)
        store.begin_attempt(record.id)
        store.mark_failed(record.id, "boom")
        assert store.reset_for_retry(record.id, expected_attempts=5) is None
        reset = store.reset_for_retry(record.id, expected_attempts=1)
        assert reset is not None
        assert reset.status == DocumentStatus.PROCESSING
        assert reset.processing_attempts == 2
        assert reset.error_message is None
        assert store.reset_for_retry(record.id) is None

    def test_reclaim_stale(self, store: PostgresStatusStore, project_id: str) -> None:
        record = _create(store, project_id)
        store.begin_attempt(record.id)
        future = datetime.now(timezone.utc) + timedelta(hours=1)
        reclaimed = store.reclaim_stale(future, "Processing timed out")
        assert record.id in [r.id for r in reclaimed]
        assert store.get(record.id).status == DocumentStatus.ERROR

    def test_text_stage_rejects_data(self, store: PostgresStatusStore, project_id: str) -> None:
        record = _create(store, project_id)
        with pytest.raises(ValueError):
            store.mark_completed(record.id, "text", StructuredData(value={}))
