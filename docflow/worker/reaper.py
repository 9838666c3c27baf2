import threading
from datetime import datetime, timedelta, timezone

from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.store.base import BaseStatusStore
from docflow.store.models import DocumentRecord


class StuckDocumentReaper:
    """Poll loop: sleep -> fail documents stuck in processing."""

    def __init__(self, store: BaseStatusStore, settings: Settings) -> None:
        self._store = store
        self._timeout_seconds = settings.processing_timeout_seconds
        self._interval_seconds = settings.reaper_poll_interval_seconds
        self._stopped = threading.Event()

    def run(self, max_cycles: int | None = None) -> None:
        """Main poll loop. Runs until stopped or interrupted.

        If max_cycles is set, stop after that many sweeps (for testing).
        """
        Log.info(
            f"Reaper started, failing documents processing for more than {self._timeout_seconds}s"
        )
        cycles = 0
        try:
            while not self._stopped.is_set():
                self.reclaim_once()
                cycles += 1
                if max_cycles is not None and cycles >= max_cycles:
                    break
                self._stopped.wait(self._interval_seconds)
        except KeyboardInterrupt:
            Log.info("Reaper shutting down gracefully")

    def stop(self) -> None:
        self._stopped.set()

    def reclaim_once(self, now: datetime | None = None) -> list[DocumentRecord]:
        """One sweep. Gracefully handle DB errors."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(seconds=self._timeout_seconds)
        message = f"Processing timed out after {self._timeout_seconds} seconds"
        try:
            reclaimed = self._store.reclaim_stale(cutoff, message)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return []
        for document in reclaimed:
            Log.warning(
                f"{document.file_name} timed out in processing",
                document_id=document.id,
                project_id=document.project_id,
            )
        return reclaimed
