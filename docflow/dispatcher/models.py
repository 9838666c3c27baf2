from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from docflow.errors import BAD_REQUEST, FORBIDDEN, SERVER_ERROR, UNAUTHORIZED
from docflow.store.models import ProcessingStage, SourceKind

HTTP_STATUS_BY_CATEGORY: dict[str, int] = {
    UNAUTHORIZED: 401,
    FORBIDDEN: 403,
    BAD_REQUEST: 400,
    SERVER_ERROR: 500,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class DispatchRequest(_WireModel):
    """Body of one submission to the extraction dispatcher."""

    project_id: str = Field(min_length=1)
    file_name: str = Field(min_length=1)
    processing_stage: ProcessingStage
    file_content_base64: str | None = None
    source_reference: str | None = None
    extraction_template: dict[str, str] | None = None
    retry: bool = False
    expected_attempts: int | None = Field(default=None, ge=0)
    document_id: str | None = None
    source_kind: SourceKind = SourceKind.MANUAL_UPLOAD

    @model_validator(mode="after")
    def _check_source(self) -> "DispatchRequest":
        if self.retry:
            if self.document_id is None:
                raise ValueError("documentId is required when retry is true")
            if self.file_content_base64 is not None:
                raise ValueError("retries reprocess stored content; omit fileContentBase64")
            return self
        has_content = self.file_content_base64 is not None
        has_reference = self.source_reference is not None
        if has_content == has_reference:
            raise ValueError("Exactly one of fileContentBase64 or sourceReference must be provided")
        return self


class ExtractionResult(_WireModel):
    extracted_text: str
    extracted_data: dict[str, Any] | None = None


class DispatchResponse(_WireModel):
    """Outcome of one dispatch, mirrored from what was persisted."""

    success: bool
    result: ExtractionResult | None = None
    document_id: str | None = None
    processing_stage: ProcessingStage | None = None
    timestamp: datetime = Field(default_factory=_utcnow)
    error: str | None = None
    reason: str | None = None
    status_category: str | None = None

    @property
    def http_status(self) -> int:
        if self.success:
            return 200
        return HTTP_STATUS_BY_CATEGORY.get(self.status_category or SERVER_ERROR, 500)
