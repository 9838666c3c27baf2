from dataclasses import dataclass
from enum import Enum

from docflow.store.models import DocumentRecord, DocumentStatus


class ChangeKind(str, Enum):
    INSERT = "insert"
    UPDATE = "update"


@dataclass(frozen=True)
class ChangeEvent:
    """A row-level change published by the status store."""

    kind: ChangeKind
    document: DocumentRecord

    @property
    def project_id(self) -> str:
        return self.document.project_id


@dataclass
class AggregateCounts:
    """Per-status document counts for one project scope."""

    pending: int = 0
    processing: int = 0
    completed: int = 0
    error: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.processing + self.completed + self.error

    def add(self, status: DocumentStatus, delta: int = 1) -> None:
        attr = status.value
        setattr(self, attr, getattr(self, attr) + delta)

    def move(self, old: DocumentStatus, new: DocumentStatus) -> None:
        if old == new:
            return
        self.add(old, -1)
        self.add(new, 1)

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "pending": self.pending,
            "processing": self.processing,
            "completed": self.completed,
            "error": self.error,
        }
