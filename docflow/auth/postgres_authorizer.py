import hashlib

from psycopg.rows import dict_row

from docflow.auth.base import AuthenticatedUser, BaseAuthorizer
from docflow.database.connection import Database
from docflow.errors import AuthenticationError, ProjectAccessError


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class PostgresAuthorizer(BaseAuthorizer):
    """Resolves tokens from api_tokens and ownership from projects."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def authenticate(self, bearer_token: str | None) -> AuthenticatedUser:
        if not bearer_token:
            raise AuthenticationError("Missing Authorization header")
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT user_id, email
                    FROM api_tokens
                    WHERE token_hash = %s
                      AND (expires_at IS NULL OR expires_at > NOW())
                    """,
                    (hash_token(bearer_token),),
                )
                row = cur.fetchone()
        if row is None:
            raise AuthenticationError("Unauthorized: Invalid or expired token")
        return AuthenticatedUser(user_id=row["user_id"], email=row["email"])

    def ensure_project_owner(self, user: AuthenticatedUser, project_id: str) -> None:
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT 1 FROM projects WHERE id = %s AND user_id = %s",
                    (project_id, user.user_id),
                )
                row = cur.fetchone()
        if row is None:
            raise ProjectAccessError("Project not found or access denied")
