"""Authentication service layer."""

import logging

from sqlalchemy.orm import Session

from backoffice.auth.permissions import Permissions
from backoffice.auth.schemas import LoginRequest, PasswordChange, UserCreate
from backoffice.auth.session import SessionToken
from backoffice.auth.store import Principal, PrincipalStore
from backoffice.auth.utils import generate_salt, verify_password

logger = logging.getLogger(__name__)

# Unknown usernames are checked against this so both failure paths cost one hash
_DUMMY_SALT = generate_salt()
_DUMMY_HASH = "0" * 64


class AuthService:
    """Service class for authentication and user management operations."""

    def __init__(self, db: Session):
        """Initialize auth service.

        Args:
            db: Database session.
        """
        self.db = db
        self.store = PrincipalStore(db)

    def login(self, data: LoginRequest) -> SessionToken | None:
        """Check credentials and issue a session token.

        An unknown username and a wrong password produce the same result so
        callers cannot probe which accounts exist.

        Args:
            data: Login credentials.

        Returns:
            SessionToken | None: New token, or None if the credentials are invalid.

        Raises:
            StoreError: If the credential store fails.
        """
        user = self.store.get_user(data.username)

        if user is None:
            verify_password(data.password, _DUMMY_SALT, _DUMMY_HASH)
            logger.warning("Rejected login attempt")
            return None

        if not verify_password(data.password, user.salt, user.password_hash):
            logger.warning("Rejected login attempt")
            return None

        self.store.record_login(user)

        token = SessionToken.issue(
            username=user.username,
            permissions=Permissions(user.permissions),
            expires_in=data.expires_in,
        )
        policy = f"expires in {data.expires_in}s" if data.expires_in else "browser session"
        logger.info(f"Issued session for {user.username} ({policy})")
        return token

    def change_password(self, principal: Principal, data: PasswordChange) -> None:
        """Change the password of the logged-in principal.

        Args:
            principal: Authenticated principal.
            data: Current and new password.

        Raises:
            ValueError: If the current password is wrong.
        """
        user = self.store.get_user(principal.username)
        if user is None or not verify_password(data.current_password, user.salt, user.password_hash):
            raise ValueError("Current password is incorrect")

        self.store.update_principal_password(principal.username, data.new_password)

    def create_user(self, data: UserCreate) -> Principal:
        """Create a user.

        Raises:
            ValueError: If the username is taken.
        """
        return self.store.create_principal(
            data.username,
            data.password,
            Permissions.from_list(data.permissions),
        )

    def list_users(self) -> list[Principal]:
        """List all users."""
        return self.store.list_principals()

    def update_permissions(self, username: str, names: list[str]) -> Principal | None:
        """Replace the permission set of a user.

        Raises:
            ValueError: If this would demote the last administrator.
        """
        return self.store.update_principal_permissions(username, Permissions.from_list(names))

    def delete_user(self, username: str) -> bool:
        """Delete a user.

        Raises:
            ValueError: If the user is the last administrator.
        """
        return self.store.delete_principal(username)


def get_auth_service(db: Session) -> AuthService:
    """Factory function for AuthService.

    Args:
        db: Database session.

    Returns:
        AuthService: Auth service instance.
    """
    return AuthService(db)
