import os
import uuid
from collections.abc import Generator

import pytest

from docflow.auth.postgres_authorizer import hash_token
from docflow.config.settings import Settings
from docflow.database.connection import Database
from docflow.feed.topic import Topic
from docflow.store.postgres_store import PostgresStatusStore


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docflow_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def database(test_settings: Settings) -> Generator[Database, None, None]:
    db = Database(test_settings)
    try:
        db.open()
        db.apply_schema()
    except Exception as e:
        db.close()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def project_id(database: Database) -> Generator[str, None, None]:
    """A fresh project id whose documents are deleted after the test."""
    project = f"it-{uuid.uuid4()}"
    yield project
    with database.connection() as conn:
        conn.execute("DELETE FROM documents WHERE project_id = %s", (project,))
        conn.execute("DELETE FROM projects WHERE id = %s", (project,))
        conn.commit()


@pytest.fixture
def store(database: Database) -> PostgresStatusStore:
    return PostgresStatusStore(database)


@pytest.fixture
def topic() -> Topic:
    return Topic()


@pytest.fixture
def seed_owner(database: Database, project_id: str) -> Generator[tuple[str, str], None, None]:
    """Insert a project owned by a fresh user with a valid API token."""
    user_id = f"user-{uuid.uuid4()}"
    token = uuid.uuid4().hex
    with database.connection() as conn:
        conn.execute(
            "INSERT INTO projects (id, user_id, name) VALUES (%s, %s, %s)",
            (project_id, user_id, "Integration project"),
        )
        conn.execute(
            "INSERT INTO api_tokens (token_hash, user_id, email, expires_at) VALUES (%s, %s, %s, NULL)",
            (hash_token(token), user_id, "owner@example.org"),
        )
        conn.commit()
    try:
        yield user_id, token
    finally:
        with database.connection() as conn:
            conn.execute("DELETE FROM api_tokens WHERE user_id = %s", (user_id,))
            conn.commit()
