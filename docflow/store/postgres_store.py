import json
from collections.abc import Collection
from datetime import datetime
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docflow.database.connection import Database
from docflow.errors import DocumentNotFoundError
from docflow.feed.models import ChangeKind
from docflow.store.base import BaseStatusStore, validate_completion, validate_failure_message
from docflow.store.models import (
    DocumentRecord,
    DocumentStatus,
    ExtractedData,
    ProcessingStage,
    SourceKind,
    extracted_data_from_payload,
    extracted_data_to_payload,
)

CHANGE_CHANNEL = "docflow_document_changes"

_COLUMNS = """
    id, project_id, file_name, processing_stage, source_kind, status,
    extracted_text, extracted_data, error_message, processing_attempts,
    source_reference, extraction_template, version, uploaded_at,
    processed_at, updated_at
"""


def _row_to_record(row: dict[str, Any]) -> DocumentRecord:
    return DocumentRecord(
        id=str(row["id"]),
        project_id=row["project_id"],
        file_name=row["file_name"],
        processing_stage=ProcessingStage(row["processing_stage"]),
        source_kind=SourceKind(row["source_kind"]),
        status=DocumentStatus(row["status"]),
        extracted_text=row["extracted_text"],
        extracted_data=extracted_data_from_payload(row["extracted_data"]),
        error_message=row["error_message"],
        processing_attempts=row["processing_attempts"],
        source_reference=row["source_reference"],
        extraction_template=row["extraction_template"],
        version=row["version"],
        uploaded_at=row["uploaded_at"],
        processed_at=row["processed_at"],
        updated_at=row["updated_at"],
    )


class PostgresStatusStore(BaseStatusStore):
    """Database operations for the documents table.

    Each write runs in its own transaction and emits ``pg_notify`` on
    CHANGE_CHANNEL, so listeners only hear about committed rows.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    def create(
        self,
        *,
        project_id: str,
        file_name: str,
        processing_stage: ProcessingStage,
        source_kind: SourceKind = SourceKind.MANUAL_UPLOAD,
        source_reference: str | None = None,
        extraction_template: dict[str, str] | None = None,
    ) -> DocumentRecord:
        template = Jsonb(extraction_template) if extraction_template else None
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO documents (
                        project_id, file_name, processing_stage, source_kind,
                        source_reference, extraction_template
                    )
                    VALUES (%s, %s, %s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (
                        project_id,
                        file_name,
                        processing_stage.value,
                        source_kind.value,
                        source_reference,
                        template,
                    ),
                )
                row = cur.fetchone()
            if row is None:
                raise RuntimeError(f"Insert of document {file_name} returned no row")
            record = _row_to_record(row)
            self._notify(conn, record, ChangeKind.INSERT)
            conn.commit()
        return record

    def get(self, document_id: str) -> DocumentRecord:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()
        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _row_to_record(row)

    def list_by_project(self, project_id: str) -> list[DocumentRecord]:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM documents
                    WHERE project_id = %s
                    ORDER BY uploaded_at DESC
                    """,
                    (project_id,),
                )
                rows = cur.fetchall()
        return [_row_to_record(row) for row in rows]

    def begin_attempt(
        self,
        document_id: str,
        source_reference: str | None = None,
    ) -> DocumentRecord:
        record = self._update_one(
            """
            UPDATE documents
            SET status = 'processing',
                processing_attempts = processing_attempts + 1,
                error_message = NULL,
                source_reference = COALESCE(%s, source_reference),
                version = version + 1,
                updated_at = NOW()
            WHERE id = %s
            """,
            (source_reference, document_id),
        )
        if record is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return record

    def mark_completed(
        self,
        document_id: str,
        extracted_text: str,
        extracted_data: ExtractedData | None,
    ) -> DocumentRecord:
        validate_completion(self.get(document_id), extracted_text, extracted_data)
        payload = extracted_data_to_payload(extracted_data)
        record = self._update_one(
            """
            UPDATE documents
            SET status = 'completed',
                extracted_text = %s,
                extracted_data = %s,
                error_message = NULL,
                processed_at = NOW(),
                version = version + 1,
                updated_at = NOW()
            WHERE id = %s
            """,
            (extracted_text, Jsonb(payload) if payload is not None else None, document_id),
        )
        if record is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return record

    def mark_failed(
        self,
        document_id: str,
        error_message: str,
        *,
        only_if_status: Collection[DocumentStatus] | None = None,
    ) -> DocumentRecord | None:
        validate_failure_message(error_message)
        statuses = [s.value for s in (only_if_status or DocumentStatus)]
        record = self._update_one(
            """
            UPDATE documents
            SET status = 'error',
                error_message = %s,
                processing_attempts = GREATEST(processing_attempts, 1),
                version = version + 1,
                updated_at = NOW()
            WHERE id = %s
              AND status = ANY(%s)
            """,
            (error_message, document_id, statuses),
        )
        if record is None and only_if_status is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return record

    def reset_for_retry(
        self,
        document_id: str,
        expected_attempts: int | None = None,
    ) -> DocumentRecord | None:
        return self._update_one(
            """
            UPDATE documents
            SET status = 'processing',
                processing_attempts = processing_attempts + 1,
                error_message = NULL,
                version = version + 1,
                updated_at = NOW()
            WHERE id = %s
              AND status = 'error'
              AND (%s::integer IS NULL OR processing_attempts = %s::integer)
            """,
            (document_id, expected_attempts, expected_attempts),
        )

    def reclaim_stale(self, older_than: datetime, error_message: str) -> list[DocumentRecord]:
        validate_failure_message(error_message)
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE documents
                    SET status = 'error',
                        error_message = %s,
                        processing_attempts = GREATEST(processing_attempts, 1),
                        version = version + 1,
                        updated_at = NOW()
                    WHERE status = 'processing'
                      AND updated_at < %s
                    RETURNING {_COLUMNS}
                    """,
                    (error_message, older_than),
                )
                rows = cur.fetchall()
            records = [_row_to_record(row) for row in rows]
            for record in records:
                self._notify(conn, record, ChangeKind.UPDATE)
            conn.commit()
        return records

    def _update_one(self, sql: str, params: tuple[Any, ...]) -> DocumentRecord | None:
        """Run a single-row UPDATE, notify, and return the new row (None if no match)."""
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(f"{sql} RETURNING {_COLUMNS}", params)  # type: ignore[arg-type]
                row = cur.fetchone()
            if row is None:
                conn.rollback()
                return None
            record = _row_to_record(row)
            self._notify(conn, record, ChangeKind.UPDATE)
            conn.commit()
        return record

    @staticmethod
    def _notify(conn: psycopg.Connection[Any], record: DocumentRecord, kind: ChangeKind) -> None:
        payload = json.dumps(
            {
                "id": record.id,
                "project_id": record.project_id,
                "kind": kind.value,
                "version": record.version,
            }
        )
        conn.execute("SELECT pg_notify(%s, %s)", (CHANGE_CHANNEL, payload))
