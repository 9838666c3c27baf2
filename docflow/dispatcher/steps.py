import base64
import binascii

from docflow.ai.analyzer import DocumentAnalyzer
from docflow.ai.data_extractor import DataExtractor
from docflow.auth.base import BaseAuthorizer
from docflow.dispatcher.pipeline import PipelineContext, PipelineStep
from docflow.errors import BadRequestError, DocumentNotFoundError, RetryRejectedError
from docflow.extraction.text_extractor import TextExtractor
from docflow.logging.logger import Log
from docflow.storage.file_storage import DocumentStorage
from docflow.store.base import BaseStatusStore
from docflow.store.models import DocumentRecord, DocumentStatus, ProcessingStage


def _require_document(context: PipelineContext) -> DocumentRecord:
    if context.document is None:
        raise ValueError("PipelineContext.document must be set before this step")
    return context.document


class AuthorizeStep(PipelineStep):
    def __init__(self, authorizer: BaseAuthorizer) -> None:
        self._authorizer = authorizer

    def run(self, context: PipelineContext) -> PipelineContext:
        user = self._authorizer.authenticate(context.bearer_token)
        self._authorizer.ensure_project_owner(user, context.request.project_id)
        context.user = user
        return context


class ResolveDocumentStep(PipelineStep):
    """Load the row named by the request, or create one for direct callers.

    A retry claims the row with an ``error -> processing`` compare-and-set;
    rows in any other status are rejected untouched.
    """

    def __init__(self, store: BaseStatusStore) -> None:
        self._store = store

    def run(self, context: PipelineContext) -> PipelineContext:
        request = context.request
        if request.document_id is None:
            context.document = self._store.create(
                project_id=request.project_id,
                file_name=request.file_name,
                processing_stage=request.processing_stage,
                source_kind=request.source_kind,
                source_reference=request.source_reference,
                extraction_template=request.extraction_template,
            )
            Log.info(f"Created document {context.document.id} for {request.file_name}")
            return context

        document = self._store.get(request.document_id)
        if document.project_id != request.project_id:
            raise DocumentNotFoundError(
                f"Document {request.document_id} not found in project {request.project_id}"
            )
        if document.processing_stage != request.processing_stage:
            raise BadRequestError(
                f"Document {document.id} was created for {document.processing_stage.value}, "
                f"not {request.processing_stage.value}"
            )
        if request.retry:
            context.document = self._claim_retry(document, request.expected_attempts)
            return context
        if document.status != DocumentStatus.PENDING:
            raise BadRequestError(
                f"Document {document.id} was already submitted ({document.status.value})"
            )
        context.document = document
        return context

    def _claim_retry(self, document: DocumentRecord, expected_attempts: int | None) -> DocumentRecord:
        if document.status != DocumentStatus.ERROR:
            raise RetryRejectedError(
                f"Document {document.id} is {document.status.value}; "
                "only failed documents can be retried"
            )
        claimed = self._store.reset_for_retry(document.id, expected_attempts)
        if claimed is None:
            raise RetryRejectedError(
                f"Document {document.id} changed while retrying; refresh and try again"
            )
        Log.info(
            f"Document {document.id} claimed for retry (attempt {claimed.processing_attempts})"
        )
        return claimed


class StoreUploadStep(PipelineStep):
    """Decode uploaded content and keep it so retries can reload it."""

    def __init__(self, storage: DocumentStorage) -> None:
        self._storage = storage

    def run(self, context: PipelineContext) -> PipelineContext:
        request = context.request
        document = _require_document(context)
        if request.file_content_base64 is not None:
            try:
                context.raw_bytes = base64.b64decode(request.file_content_base64, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise BadRequestError(f"Failed to process file content: {exc}") from exc
            context.source_reference = self._storage.save(
                request.project_id, request.file_name, context.raw_bytes
            )
            return context

        if request.retry:
            reference = document.source_reference or request.source_reference
        else:
            reference = request.source_reference or document.source_reference
        if not reference:
            raise BadRequestError(f"Document {document.id} has no stored source to process")
        context.source_reference = reference
        return context


class AcknowledgeStep(PipelineStep):
    def __init__(self, store: BaseStatusStore) -> None:
        self._store = store

    def run(self, context: PipelineContext) -> PipelineContext:
        document = _require_document(context)
        if context.request.retry:
            # Already moved to processing by the retry claim.
            return context
        context.document = self._store.begin_attempt(document.id, context.source_reference)
        Log.info(
            f"Document {document.id} marked as processing "
            f"(attempt {context.document.processing_attempts})"
        )
        return context


class LoadSourceStep(PipelineStep):
    def __init__(self, storage: DocumentStorage) -> None:
        self._storage = storage

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.raw_bytes:
            return context
        if context.source_reference is None:
            raise ValueError("PipelineContext.source_reference must be set before loading")
        context.raw_bytes = self._storage.load(context.source_reference)
        Log.info(
            f"Loaded {len(context.raw_bytes)} bytes for document {_require_document(context).id}"
        )
        return context


class ExtractTextStep(PipelineStep):
    def __init__(self, text_extractor: TextExtractor) -> None:
        self._text_extractor = text_extractor

    def run(self, context: PipelineContext) -> PipelineContext:
        context.extracted_text = self._text_extractor.extract(
            context.request.file_name, context.raw_bytes
        )
        Log.info(
            f"Extracted {len(context.extracted_text)} chars from document "
            f"{_require_document(context).id}"
        )
        return context


class AIStageStep(PipelineStep):
    """Runs the AI stage requested for the document, if any."""

    def __init__(self, data_extractor: DataExtractor, analyzer: DocumentAnalyzer) -> None:
        self._data_extractor = data_extractor
        self._analyzer = analyzer

    def run(self, context: PipelineContext) -> PipelineContext:
        document = _require_document(context)
        stage = context.request.processing_stage
        if stage == ProcessingStage.DATA_EXTRACTION:
            template = context.request.extraction_template or document.extraction_template
            context.extracted_data = self._data_extractor.extract(context.extracted_text, template)
        elif stage == ProcessingStage.FULL_ANALYSIS:
            context.extracted_data = self._analyzer.analyze(context.extracted_text)
        return context


class PersistResultStep(PipelineStep):
    def __init__(self, store: BaseStatusStore) -> None:
        self._store = store

    def run(self, context: PipelineContext) -> PipelineContext:
        document = _require_document(context)
        context.document = self._store.mark_completed(
            document.id, context.extracted_text, context.extracted_data
        )
        Log.info("Document completed", document_id=document.id)
        return context
