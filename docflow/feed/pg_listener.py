import json
import threading

import psycopg

from docflow.database.connection import Database
from docflow.errors import DocumentNotFoundError
from docflow.feed.models import ChangeEvent, ChangeKind
from docflow.feed.topic import Topic
from docflow.logging.logger import Log
from docflow.store.base import BaseStatusStore
from docflow.store.postgres_store import CHANGE_CHANNEL


class PostgresChangeListener:
    """Bridges ``pg_notify`` row changes into an in-process Topic.

    Notifications only carry the row id; the listener re-reads the row so
    subscribers always receive the committed state.
    """

    def __init__(
        self,
        database: Database,
        store: BaseStatusStore,
        topic: Topic,
        channel: str = CHANGE_CHANNEL,
        poll_timeout_seconds: float = 1.0,
    ) -> None:
        self._database = database
        self._store = store
        self._topic = topic
        self._channel = channel
        self._poll_timeout = poll_timeout_seconds
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stopped.clear()
        self._thread = threading.Thread(
            target=self.run, name="docflow-change-listener", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stopped.set()
        if self._thread is not None:
            self._thread.join(timeout=self._poll_timeout * 5)
            self._thread = None

    def run(self) -> None:
        """LISTEN loop. Runs until stop() is called."""
        with psycopg.connect(self._database.conninfo, autocommit=True) as conn:
            conn.execute(f"LISTEN {self._channel}")  # type: ignore[arg-type]
            Log.info(f"Listening for document changes on {self._channel}")
            while not self._stopped.is_set():
                for notify in conn.notifies(timeout=self._poll_timeout):
                    self.dispatch(notify.payload)
        Log.info("Change listener stopped")

    def dispatch(self, payload: str) -> None:
        """Turn one notification payload into a published ChangeEvent."""
        try:
            message = json.loads(payload)
            document_id = message["id"]
            kind = ChangeKind(message.get("kind", ChangeKind.UPDATE.value))
        except (ValueError, KeyError, TypeError) as exc:
            Log.warning(f"Ignoring malformed change notification {payload!r}: {exc}")
            return
        try:
            record = self._store.get(document_id)
        except DocumentNotFoundError:
            Log.warning(f"Change notification for unknown document {document_id}")
            return
        self._topic.publish(record.project_id, ChangeEvent(kind=kind, document=record))
