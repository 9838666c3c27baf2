from dataclasses import dataclass

from docflow.dispatcher.client import BaseDispatcherClient
from docflow.dispatcher.models import DispatchRequest, DispatchResponse
from docflow.errors import RetryRejectedError, TransportError
from docflow.logging.logger import Log
from docflow.store.base import BaseStatusStore
from docflow.store.models import DocumentStatus

_UNFINISHED_RETRY = frozenset({DocumentStatus.PROCESSING, DocumentStatus.ERROR})


@dataclass(frozen=True)
class RetryOutcome:
    document_id: str
    success: bool
    response: DispatchResponse | None = None
    error: str | None = None


class RetryController:
    """Re-submits a failed document from its stored source.

    The dispatcher claims the row with an ``error -> processing``
    compare-and-set keyed on the attempt count read here, so of several
    concurrent retries of the same document only one is processed.
    """

    def __init__(self, *, store: BaseStatusStore, client: BaseDispatcherClient) -> None:
        self._store = store
        self._client = client

    def retry(self, document_id: str, expected_attempts: int | None = None) -> RetryOutcome:
        """Retry one failed document.

        Raises:
            DocumentNotFoundError: if the document does not exist.
            RetryRejectedError: if the document is not in ``error``, has no
                stored source, or was retried concurrently.
        """
        document = self._store.get(document_id)
        if document.status != DocumentStatus.ERROR:
            raise RetryRejectedError(
                f"Document {document_id} is {document.status.value}; only failed documents can be retried"
            )
        if not document.source_reference:
            raise RetryRejectedError(
                f"Document {document_id} has no stored source; upload the file again"
            )
        if expected_attempts is not None and document.processing_attempts != expected_attempts:
            raise RetryRejectedError(f"Document {document_id} changed while retrying; refresh and try again")
        Log.info(f"Retrying document {document_id} (attempts so far: {document.processing_attempts})")

        request = DispatchRequest(
            project_id=document.project_id,
            file_name=document.file_name,
            processing_stage=document.processing_stage,
            source_reference=document.source_reference,
            extraction_template=document.extraction_template,
            retry=True,
            expected_attempts=document.processing_attempts,
            document_id=document.id,
            source_kind=document.source_kind,
        )
        try:
            response = self._client.submit(request)
        except TransportError as exc:
            Log.error(f"Retry failed: {exc}", document_id=document_id)
            self._store.mark_failed(document_id, str(exc), only_if_status=_UNFINISHED_RETRY)
            return RetryOutcome(document_id=document_id, success=False, error=str(exc))

        if response.reason == RetryRejectedError.reason:
            raise RetryRejectedError(response.error or f"Document {document_id} cannot be retried")
        if not response.success:
            # The dispatcher has already persisted the failure.
            error = response.error or "Retry failed"
            Log.error(f"Retry failed: {error}", document_id=document_id)
            return RetryOutcome(document_id=document_id, success=False, response=response, error=error)
        Log.info("Retry completed", document_id=document_id)
        return RetryOutcome(document_id=document_id, success=True, response=response)
