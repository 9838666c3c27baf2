from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ProcessingStage(str, Enum):
    TEXT_EXTRACTION = "text_extraction"
    DATA_EXTRACTION = "data_extraction"
    FULL_ANALYSIS = "full_analysis"


class SourceKind(str, Enum):
    MANUAL_UPLOAD = "manual_upload"
    IMPORTED_RECORD = "imported_record"


class DocumentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


TERMINAL_STATUSES = frozenset({DocumentStatus.COMPLETED, DocumentStatus.ERROR})
NON_TERMINAL_STATUSES = frozenset({DocumentStatus.PENDING, DocumentStatus.PROCESSING})


@dataclass(frozen=True)
class StructuredData:
    """Field values returned by the AI provider for an extraction template."""

    value: dict[str, Any] = field(default_factory=dict)
    note: str | None = None
    kind: str = "structured"


@dataclass(frozen=True)
class RawUnparsedData:
    """AI response kept verbatim because it could not be parsed."""

    text: str
    note: str = "AI response was not valid JSON"
    kind: str = "raw_unparsed"


@dataclass(frozen=True)
class NarrativeData:
    """Free-form analysis narrative."""

    text: str
    kind: str = "narrative"


ExtractedData = StructuredData | RawUnparsedData | NarrativeData


def extracted_data_to_payload(data: ExtractedData | None) -> dict[str, Any] | None:
    """Serialize extracted data to a JSON-ready dict tagged with ``kind``."""
    if data is None:
        return None
    if isinstance(data, StructuredData):
        payload: dict[str, Any] = {"kind": data.kind, "value": dict(data.value)}
        if data.note is not None:
            payload["note"] = data.note
        return payload
    if isinstance(data, RawUnparsedData):
        return {"kind": data.kind, "text": data.text, "note": data.note}
    return {"kind": data.kind, "text": data.text}


def extracted_data_from_payload(payload: dict[str, Any] | None) -> ExtractedData | None:
    """Rebuild extracted data from its tagged JSON form.

    Raises:
        ValueError: if the ``kind`` tag is unknown.
    """
    if payload is None:
        return None
    kind = payload.get("kind")
    if kind == "structured":
        return StructuredData(value=dict(payload.get("value") or {}), note=payload.get("note"))
    if kind == "raw_unparsed":
        return RawUnparsedData(text=payload["text"], note=payload.get("note") or "")
    if kind == "narrative":
        return NarrativeData(text=payload["text"])
    raise ValueError(f"Unknown extracted data kind: {kind!r}")


def strip_extension(file_name: str) -> str:
    """Return the file name without its last extension."""
    stem, dot, suffix = file_name.rpartition(".")
    return stem if dot and stem and "/" not in suffix else file_name


@dataclass
class DocumentRecord:
    """Represents a row from the documents table."""

    id: str
    project_id: str
    file_name: str
    processing_stage: ProcessingStage
    source_kind: SourceKind = SourceKind.MANUAL_UPLOAD
    status: DocumentStatus = DocumentStatus.PENDING
    extracted_text: str | None = None
    extracted_data: ExtractedData | None = None
    error_message: str | None = None
    processing_attempts: int = 0
    source_reference: str | None = None
    extraction_template: dict[str, str] | None = None
    version: int = 1
    uploaded_at: datetime | None = None
    processed_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def title(self) -> str:
        return strip_extension(self.file_name)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
