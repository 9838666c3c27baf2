from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity resolved from a bearer credential."""

    user_id: str
    email: str | None = None


class BaseAuthorizer(ABC):
    """Contract for the external authentication and ownership collaborator."""

    @abstractmethod
    def authenticate(self, bearer_token: str | None) -> AuthenticatedUser:
        """Resolve the caller behind a bearer token.

        Raises:
            AuthenticationError: if the token is missing, unknown, or expired.
        """

    @abstractmethod
    def ensure_project_owner(self, user: AuthenticatedUser, project_id: str) -> None:
        """Confirm the caller owns the project.

        Raises:
            ProjectAccessError: if ownership cannot be confirmed.
        """


def extract_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer ...`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
