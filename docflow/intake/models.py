from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from docflow.dispatcher.models import ExtractionResult
from docflow.store.models import DocumentStatus, ProcessingStage


@dataclass(frozen=True)
class FileDescriptor:
    """A candidate file: declared type and size, plus where its bytes live."""

    file_name: str
    mime_type: str
    size_bytes: int
    content: bytes | None = None
    path: Path | None = None

    @classmethod
    def from_bytes(cls, file_name: str, mime_type: str, content: bytes) -> "FileDescriptor":
        return cls(file_name=file_name, mime_type=mime_type, size_bytes=len(content), content=content)

    @classmethod
    def from_path(cls, path: Path, mime_type: str) -> "FileDescriptor":
        return cls(file_name=path.name, mime_type=mime_type, size_bytes=path.stat().st_size, path=path)

    def read_bytes(self) -> bytes:
        if self.content is not None:
            return self.content
        if self.path is None:
            raise ValueError(f"{self.file_name} has neither content nor a path")
        return self.path.read_bytes()


@dataclass(frozen=True)
class ImportedRecord:
    """A previously imported bibliographic record whose file is referenced, not uploaded."""

    file_name: str
    source_reference: str


@dataclass(frozen=True)
class ValidationOutcome:
    accepted: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> "ValidationOutcome":
        return cls(accepted=True)

    @classmethod
    def rejected(cls, error: str) -> "ValidationOutcome":
        return cls(accepted=False, error=error)


class ProgressPhase(str, Enum):
    VALIDATING = "validating"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressEvent:
    key: str
    file_name: str
    phase: ProgressPhase
    progress: int
    document_id: str | None = None
    error: str | None = None


@dataclass
class FileOutcome:
    """Terminal result of one file in a batch, as seen by the submitting client."""

    key: str
    file_name: str
    status: DocumentStatus
    document_id: str | None = None
    error: str | None = None
    reason: str | None = None
    result: ExtractionResult | None = None


@dataclass
class ProcessingBatch:
    """Files submitted together with one processing stage; never persisted."""

    items: list[FileDescriptor | ImportedRecord]
    processing_stage: ProcessingStage
    max_size: int
    skipped: list[str] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        items: list[FileDescriptor] | list[ImportedRecord],
        processing_stage: ProcessingStage,
        max_size: int,
    ) -> "ProcessingBatch":
        """Truncate to ``max_size``; the overflow is recorded in ``skipped``."""
        accepted = list(items[:max_size])
        skipped = [item.file_name for item in items[max_size:]]
        return cls(
            items=accepted,
            processing_stage=processing_stage,
            max_size=max_size,
            skipped=skipped,
        )


@dataclass
class BatchResult:
    outcomes: list[FileOutcome] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def completed(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.status == DocumentStatus.COMPLETED]

    @property
    def failed(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.status == DocumentStatus.ERROR]
