"""Client-side intake: validate, record, encode, and submit a batch of files."""

import base64
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed

from docflow.config.settings import Settings
from docflow.dispatcher.client import BaseDispatcherClient
from docflow.dispatcher.models import DispatchRequest, DispatchResponse
from docflow.intake.models import (
    BatchResult,
    FileDescriptor,
    FileOutcome,
    ImportedRecord,
    ProcessingBatch,
    ProgressEvent,
    ProgressPhase,
)
from docflow.errors import BadRequestError, PipelineError, TransportError, ValidationError
from docflow.intake.validator import FileValidator
from docflow.logging.logger import Log
from docflow.store.base import BaseStatusStore
from docflow.store.models import (
    NON_TERMINAL_STATUSES,
    DocumentStatus,
    ProcessingStage,
    SourceKind,
)

ProgressCallback = Callable[[ProgressEvent], None]
ErrorCallback = Callable[[str, str], None]
CompleteCallback = Callable[[FileOutcome], None]

_PROGRESS = {
    ProgressPhase.VALIDATING: 0,
    ProgressPhase.UPLOADING: 25,
    ProgressPhase.PROCESSING: 50,
    ProgressPhase.COMPLETED: 100,
    ProgressPhase.ERROR: 0,
}


class ProgressBoard:
    """Latest progress event per file, safe to update from worker threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, ProgressEvent] = {}

    def record(self, event: ProgressEvent) -> None:
        with self._lock:
            self._entries[event.key] = event

    def snapshot(self) -> dict[str, ProgressEvent]:
        with self._lock:
            return dict(self._entries)

    def clear_completed(self) -> None:
        with self._lock:
            self._entries = {
                k: e for k, e in self._entries.items() if e.phase != ProgressPhase.COMPLETED
            }


class IngestionGate:
    """Submits each file of a batch as an independent concurrent unit.

    A file's transitions are driven only by its own submission; a failure in
    one file never aborts its siblings.
    """

    def __init__(
        self,
        *,
        project_id: str,
        store: BaseStatusStore,
        client: BaseDispatcherClient,
        settings: Settings,
        validator: FileValidator | None = None,
    ) -> None:
        self._project_id = project_id
        self._store = store
        self._client = client
        self._max_batch_size = settings.max_batch_size
        self._max_concurrent = max(1, settings.max_concurrent_submissions)
        self._validator = validator or FileValidator.from_settings(settings)
        self.progress = ProgressBoard()

    def submit_batch(
        self,
        files: list[FileDescriptor],
        processing_stage: ProcessingStage,
        *,
        extraction_template: dict[str, str] | None = None,
        on_progress: ProgressCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> BatchResult:
        """Validate and submit uploaded files; returns one outcome per submitted file."""
        batch = ProcessingBatch.create(files, processing_stage, self._max_batch_size)
        return self._run(
            batch,
            lambda key, item: self._submit_file(
                key, item, processing_stage, extraction_template, on_progress, on_error
            ),
            on_complete,
        )

    def submit_imported(
        self,
        records: list[ImportedRecord],
        processing_stage: ProcessingStage,
        *,
        extraction_template: dict[str, str] | None = None,
        on_progress: ProgressCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> BatchResult:
        """Submit previously imported records by reference."""
        batch = ProcessingBatch.create(records, processing_stage, self._max_batch_size)
        return self._run(
            batch,
            lambda key, item: self._submit_record(
                key, item, processing_stage, extraction_template, on_progress, on_error
            ),
            on_complete,
        )

    def _run(
        self,
        batch: ProcessingBatch,
        submit_one: Callable[[str, object], FileOutcome],
        on_complete: CompleteCallback | None,
    ) -> BatchResult:
        if batch.skipped:
            Log.warning(
                f"Batch exceeds {batch.max_size} files; not submitting: {batch.skipped}"
            )
        result = BatchResult(skipped=list(batch.skipped))
        if not batch.items:
            return result

        keys = [f"{index}:{item.file_name}" for index, item in enumerate(batch.items)]
        workers = min(self._max_concurrent, len(batch.items))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="docflow-intake") as pool:
            futures = [
                pool.submit(self._guarded, submit_one, key, item)
                for key, item in zip(keys, batch.items)
            ]
            # Callbacks fire as files finish; outcomes keep submission order.
            for future in as_completed(futures):
                outcome = future.result()
                if on_complete is not None and outcome.status == DocumentStatus.COMPLETED:
                    on_complete(outcome)
            result.outcomes.extend(future.result() for future in futures)

        Log.info(
            f"Batch for project {self._project_id} finished: "
            f"{len(result.completed)} completed, {len(result.failed)} failed, "
            f"{len(result.skipped)} skipped"
        )
        return result

    @staticmethod
    def _guarded(
        submit_one: Callable[[str, object], FileOutcome],
        key: str,
        item: FileDescriptor | ImportedRecord,
    ) -> FileOutcome:
        try:
            return submit_one(key, item)
        except Exception as exc:
            Log.exception(f"Unexpected intake failure for {item.file_name}")
            return FileOutcome(
                key=key,
                file_name=item.file_name,
                status=DocumentStatus.ERROR,
                error=str(exc),
                reason=PipelineError.reason,
            )

    def _submit_file(
        self,
        key: str,
        file: FileDescriptor,
        processing_stage: ProcessingStage,
        extraction_template: dict[str, str] | None,
        on_progress: ProgressCallback | None,
        on_error: ErrorCallback | None,
    ) -> FileOutcome:
        self._emit(on_progress, key, file.file_name, ProgressPhase.VALIDATING)
        validation = self._validator.validate(file)
        if not validation.accepted:
            error = validation.error or "File rejected"
            Log.warning(f"Rejected {file.file_name}: {error}")
            self._emit(on_progress, key, file.file_name, ProgressPhase.ERROR, error=error)
            if on_error is not None:
                on_error(file.file_name, error)
            return FileOutcome(
                key=key,
                file_name=file.file_name,
                status=DocumentStatus.ERROR,
                error=error,
                reason=ValidationError.reason,
            )

        document = self._store.create(
            project_id=self._project_id,
            file_name=file.file_name,
            processing_stage=processing_stage,
            source_kind=SourceKind.MANUAL_UPLOAD,
            extraction_template=extraction_template,
        )
        self._emit(on_progress, key, file.file_name, ProgressPhase.UPLOADING, document.id)

        try:
            encoded = base64.b64encode(file.read_bytes()).decode("ascii")
        except (OSError, ValueError) as exc:
            return self._fail(
                key, file.file_name, document.id, f"Failed to read file: {exc}",
                BadRequestError.reason, on_progress, on_error,
            )

        request = DispatchRequest(
            project_id=self._project_id,
            file_name=file.file_name,
            processing_stage=processing_stage,
            file_content_base64=encoded,
            extraction_template=extraction_template,
            document_id=document.id,
        )
        return self._dispatch(key, request, document.id, on_progress, on_error)

    def _submit_record(
        self,
        key: str,
        record: ImportedRecord,
        processing_stage: ProcessingStage,
        extraction_template: dict[str, str] | None,
        on_progress: ProgressCallback | None,
        on_error: ErrorCallback | None,
    ) -> FileOutcome:
        self._emit(on_progress, key, record.file_name, ProgressPhase.VALIDATING)
        document = self._store.create(
            project_id=self._project_id,
            file_name=record.file_name,
            processing_stage=processing_stage,
            source_kind=SourceKind.IMPORTED_RECORD,
            source_reference=record.source_reference,
            extraction_template=extraction_template,
        )
        self._emit(on_progress, key, record.file_name, ProgressPhase.UPLOADING, document.id)
        request = DispatchRequest(
            project_id=self._project_id,
            file_name=record.file_name,
            processing_stage=processing_stage,
            source_reference=record.source_reference,
            extraction_template=extraction_template,
            document_id=document.id,
            source_kind=SourceKind.IMPORTED_RECORD,
        )
        return self._dispatch(key, request, document.id, on_progress, on_error)

    def _dispatch(
        self,
        key: str,
        request: DispatchRequest,
        document_id: str,
        on_progress: ProgressCallback | None,
        on_error: ErrorCallback | None,
    ) -> FileOutcome:
        self._emit(on_progress, key, request.file_name, ProgressPhase.PROCESSING, document_id)
        try:
            response: DispatchResponse = self._client.submit(request)
        except Exception as exc:
            reason = exc.reason if isinstance(exc, PipelineError) else TransportError.reason
            return self._fail(
                key, request.file_name, document_id, str(exc), reason, on_progress, on_error
            )

        if not response.success:
            error = response.error or "Upload failed"
            return self._fail(
                key, request.file_name, document_id, error, response.reason, on_progress, on_error
            )

        self._emit(on_progress, key, request.file_name, ProgressPhase.COMPLETED, document_id)
        return FileOutcome(
            key=key,
            file_name=request.file_name,
            status=DocumentStatus.COMPLETED,
            document_id=document_id,
            result=response.result,
        )

    def _fail(
        self,
        key: str,
        file_name: str,
        document_id: str,
        error: str,
        reason: str | None,
        on_progress: ProgressCallback | None,
        on_error: ErrorCallback | None,
    ) -> FileOutcome:
        Log.error(f"Submission of {file_name} failed: {error}", reason=reason, document_id=document_id)
        # Only rows the dispatcher never finished are ours to fail.
        self._store.mark_failed(document_id, error, only_if_status=NON_TERMINAL_STATUSES)
        self._emit(on_progress, key, file_name, ProgressPhase.ERROR, document_id, error)
        if on_error is not None:
            on_error(file_name, error)
        return FileOutcome(
            key=key,
            file_name=file_name,
            status=DocumentStatus.ERROR,
            document_id=document_id,
            error=error,
            reason=reason,
        )

    def _emit(
        self,
        on_progress: ProgressCallback | None,
        key: str,
        file_name: str,
        phase: ProgressPhase,
        document_id: str | None = None,
        error: str | None = None,
    ) -> None:
        event = ProgressEvent(
            key=key,
            file_name=file_name,
            phase=phase,
            progress=_PROGRESS[phase],
            document_id=document_id,
            error=error,
        )
        self.progress.record(event)
        if on_progress is not None:
            on_progress(event)
