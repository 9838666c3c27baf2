from pathlib import Path

from docflow.ai.analyzer import DocumentAnalyzer
from docflow.ai.data_extractor import DataExtractor
from docflow.ai.factory import AIProviderFactory
from docflow.ai.provider import AIProvider
from docflow.auth.base import BaseAuthorizer
from docflow.config.settings import Settings
from docflow.dispatcher.models import DispatchRequest, DispatchResponse, ExtractionResult
from docflow.dispatcher.pipeline import PipelineContext, PipelineStep
from docflow.dispatcher.steps import (
    AcknowledgeStep,
    AIStageStep,
    AuthorizeStep,
    ExtractTextStep,
    LoadSourceStep,
    PersistResultStep,
    ResolveDocumentStep,
    StoreUploadStep,
)
from docflow.errors import AuthorizationError, PipelineError
from docflow.extraction.factory import TextExtractorFactory
from docflow.logging.logger import Log
from docflow.storage.file_storage import DocumentStorage
from docflow.store.base import BaseStatusStore
from docflow.store.models import extracted_data_to_payload


class ExtractionDispatcher:
    """Runs one document through the extraction pipeline.

    Pipeline: authorize -> resolve row -> store upload -> acknowledge ->
    load source -> extract text -> AI stage -> persist.

    Stateless between calls; concurrent calls share no mutable state. The
    response always reports what was persisted: a failure after the row was
    resolved is written to the store as ``error`` before it is returned.
    """

    def __init__(self, steps: list[PipelineStep], store: BaseStatusStore) -> None:
        self._steps = steps
        self._store = store

    def handle(self, request: DispatchRequest, bearer_token: str | None) -> DispatchResponse:
        Log.info(
            f"Dispatching {request.file_name}",
            project_id=request.project_id,
            stage=request.processing_stage.value,
            retry=request.retry,
        )
        context = PipelineContext(request=request, bearer_token=bearer_token)
        try:
            for step in self._steps:
                context = step.run(context)
        except PipelineError as exc:
            return self._fail(context, exc)
        except Exception as exc:
            Log.exception(f"Unexpected failure while processing {request.file_name}")
            return self._fail(context, PipelineError(f"Internal error: {exc}"))

        document = context.document
        if document is None:
            return self._fail(context, PipelineError("Pipeline finished without a document"))
        return DispatchResponse(
            success=True,
            result=ExtractionResult(
                extracted_text=document.extracted_text or context.extracted_text,
                extracted_data=extracted_data_to_payload(document.extracted_data),
            ),
            document_id=document.id,
            processing_stage=document.processing_stage,
        )

    def _fail(self, context: PipelineContext, exc: PipelineError) -> DispatchResponse:
        message = str(exc) or type(exc).__name__
        Log.error(
            f"Processing {context.request.file_name} failed: {message}",
            reason=exc.reason,
            document_id=context.document.id if context.document else None,
        )
        document = context.document
        if document is not None and not isinstance(exc, AuthorizationError):
            try:
                self._store.mark_failed(document.id, message)
            except Exception as store_exc:
                # The row stays in processing; the stale-row reaper reclaims it.
                Log.error(f"Could not record failure for document {document.id}: {store_exc}")
        return DispatchResponse(
            success=False,
            document_id=document.id if document is not None else context.request.document_id,
            processing_stage=context.request.processing_stage,
            error=message,
            reason=exc.reason,
            status_category=exc.category,
        )


def build_dispatcher(
    settings: Settings,
    store: BaseStatusStore,
    authorizer: BaseAuthorizer,
    storage: DocumentStorage | None = None,
    ai_provider: AIProvider | None = None,
) -> ExtractionDispatcher:
    """Build an ExtractionDispatcher with all required adapters."""
    storage = storage or DocumentStorage(
        files_root=Path(settings.files_root),
        download_timeout_seconds=settings.source_download_timeout_seconds,
    )
    provider = ai_provider or AIProviderFactory.create(settings)
    steps: list[PipelineStep] = [
        AuthorizeStep(authorizer),
        ResolveDocumentStep(store),
        StoreUploadStep(storage),
        AcknowledgeStep(store),
        LoadSourceStep(storage),
        ExtractTextStep(TextExtractorFactory.create(settings)),
        AIStageStep(DataExtractor(provider=provider), DocumentAnalyzer(provider=provider)),
        PersistResultStep(store),
    ]
    return ExtractionDispatcher(steps, store)
