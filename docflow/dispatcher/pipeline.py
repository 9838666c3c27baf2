from abc import ABC, abstractmethod
from dataclasses import dataclass

from docflow.auth.base import AuthenticatedUser
from docflow.dispatcher.models import DispatchRequest
from docflow.store.models import DocumentRecord, ExtractedData


@dataclass(slots=True)
class PipelineContext:
    request: DispatchRequest
    bearer_token: str | None = None
    user: AuthenticatedUser | None = None
    document: DocumentRecord | None = None
    source_reference: str | None = None
    raw_bytes: bytes = b""
    extracted_text: str = ""
    extracted_data: ExtractedData | None = None


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
