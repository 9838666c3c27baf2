from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool

from docflow.config.settings import Settings

SCHEMA_PATH = Path(__file__).parent / "schema.sql"


def build_conninfo(settings: Settings) -> str:
    return (
        f"host={settings.db_host} "
        f"port={settings.db_port} "
        f"dbname={settings.db_database} "
        f"user={settings.db_username} "
        f"password={settings.db_password}"
    )


class Database:
    """Owns the connection pool. Passed explicitly to every consumer."""

    def __init__(self, settings: Settings) -> None:
        self._conninfo = build_conninfo(settings)
        self._max_size = settings.db_pool_max_size
        self._pool: ConnectionPool | None = None

    @property
    def conninfo(self) -> str:
        return self._conninfo

    def open(self) -> None:
        """Open the connection pool."""
        if self._pool is None:
            self._pool = ConnectionPool(
                self._conninfo, min_size=1, max_size=self._max_size, open=True
            )

    def close(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def connection(self) -> Generator[psycopg.Connection[Any], None, None]:
        """Yield a connection from the pool. Caller manages commit/rollback."""
        if self._pool is None:
            raise RuntimeError("Connection pool not initialized. Call open() first.")
        with self._pool.connection() as conn:
            yield conn

    def apply_schema(self, path: Path = SCHEMA_PATH) -> None:
        """Create the tables the pipeline depends on if they are missing."""
        sql = path.read_text(encoding="utf-8")
        with self.connection() as conn:
            conn.execute(sql)  # type: ignore[arg-type]
            conn.commit()
