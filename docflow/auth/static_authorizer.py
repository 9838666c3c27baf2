from docflow.auth.base import AuthenticatedUser, BaseAuthorizer
from docflow.errors import AuthenticationError, ProjectAccessError


class StaticAuthorizer(BaseAuthorizer):
    """Authorizer backed by fixed token and project-owner tables.

    Suitable for local development and tests.
    """

    def __init__(
        self,
        tokens: dict[str, str],
        project_owners: dict[str, str],
    ) -> None:
        self._tokens = dict(tokens)
        self._project_owners = dict(project_owners)

    def authenticate(self, bearer_token: str | None) -> AuthenticatedUser:
        if not bearer_token:
            raise AuthenticationError("Missing Authorization header")
        user_id = self._tokens.get(bearer_token)
        if user_id is None:
            raise AuthenticationError("Unauthorized: Invalid or expired token")
        return AuthenticatedUser(user_id=user_id)

    def ensure_project_owner(self, user: AuthenticatedUser, project_id: str) -> None:
        if self._project_owners.get(project_id) != user.user_id:
            raise ProjectAccessError("Project not found or access denied")
