import threading

import uvicorn

from docflow.api.server import create_app
from docflow.auth.postgres_authorizer import PostgresAuthorizer
from docflow.config.settings import Settings
from docflow.database.connection import Database
from docflow.dispatcher.dispatcher import build_dispatcher
from docflow.feed.pg_listener import PostgresChangeListener
from docflow.feed.topic import Topic
from docflow.logging.logger import Log
from docflow.store.postgres_store import PostgresStatusStore
from docflow.worker.reaper import StuckDocumentReaper


def main() -> None:
    """Entry point: open database -> build dependencies -> serve the dispatcher."""
    settings = Settings()
    Log.configure(settings.log_level)
    database = Database(settings)
    database.open()

    reaper: StuckDocumentReaper | None = None
    listener: PostgresChangeListener | None = None
    try:
        database.apply_schema()
        store = PostgresStatusStore(database)
        topic = Topic()
        dispatcher = build_dispatcher(settings, store, PostgresAuthorizer(database))

        reaper = StuckDocumentReaper(store, settings)
        threading.Thread(target=reaper.run, name="docflow-reaper", daemon=True).start()
        listener = PostgresChangeListener(database, store, topic)
        listener.start()

        Log.info(f"Serving dispatcher on {settings.api_host}:{settings.api_port}")
        uvicorn.run(
            create_app(dispatcher),
            host=settings.api_host,
            port=settings.api_port,
            log_level=settings.log_level.lower(),
        )
    finally:
        if listener is not None:
            listener.stop()
        if reaper is not None:
            reaper.stop()
        database.close()


if __name__ == "__main__":
    main()
