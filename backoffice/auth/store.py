"""Principal store backed by the user table.

The Auth Guard reads current permissions through this adapter on every
request; the cookie only caches them. Every SQLAlchemy failure is surfaced
as :class:`StoreError` so callers can tell an outage from a missing user.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.auth.permissions import MAX_MASK, Permissions
from backoffice.auth.utils import generate_salt, hash_password
from backoffice.config import get_settings
from backoffice.db.models import User

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """The credential store could not be reached or failed mid-operation."""


@dataclass(frozen=True)
class Principal:
    """An authenticated identity and its current permissions.

    Attributes:
        username: Unique login name.
        permissions: Permission set as stored.
    """

    username: str
    permissions: Permissions

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        """Build a principal from a user row."""
        return cls(username=user.username, permissions=Permissions(user.permissions))


class PrincipalStore:
    """Lookups and mutations of principals."""

    def __init__(self, db: Session):
        """Initialize principal store.

        Args:
            db: Database session.
        """
        self.db = db

    def _fail(self, action: str) -> StoreError:
        self.db.rollback()
        logger.exception(f"Database error while {action}")
        return StoreError(f"Database error while {action}")

    def _admin_rows(self, lock: bool = False) -> list[User]:
        query = select(User).where(User.permissions == MAX_MASK)
        if lock:
            query = query.with_for_update()
        return list(self.db.scalars(query))

    def find_principal_by_identity(self, username: str) -> Principal | None:
        """Fetch a principal's current permissions.

        Args:
            username: Username stored in the session.

        Returns:
            Principal | None: Principal if the user exists, None otherwise.

        Raises:
            StoreError: If the lookup fails.
        """
        try:
            user = self.db.scalars(select(User).where(User.username == username).limit(1)).first()
        except SQLAlchemyError as e:
            raise self._fail("looking up principal") from e
        return Principal.from_user(user) if user else None

    def get_user(self, username: str) -> User | None:
        """Fetch the full credential record for login.

        Raises:
            StoreError: If the lookup fails.
        """
        try:
            return self.db.scalars(select(User).where(User.username == username).limit(1)).first()
        except SQLAlchemyError as e:
            raise self._fail("looking up credentials") from e

    def list_principals(self) -> list[Principal]:
        """List every principal ordered by username."""
        try:
            users = self.db.scalars(select(User).order_by(User.username)).all()
        except SQLAlchemyError as e:
            raise self._fail("listing principals") from e
        return [Principal.from_user(user) for user in users]

    def count_admins(self) -> int:
        """Count principals holding the ADMIN mask."""
        try:
            return self.db.scalar(
                select(func.count()).select_from(User).where(User.permissions == MAX_MASK)
            )
        except SQLAlchemyError as e:
            raise self._fail("counting administrators") from e

    def create_principal(
        self,
        username: str,
        password: str,
        permissions: Permissions,
    ) -> Principal:
        """Create a principal with a freshly salted password.

        Args:
            username: Unique login name.
            password: Plain text password.
            permissions: Initial permission set.

        Returns:
            Principal: The created principal.

        Raises:
            ValueError: If the username is taken.
            StoreError: If the insert fails for another reason.
        """
        if self.get_user(username) is not None:
            raise ValueError(f"User '{username}' already exists")

        salt = generate_salt()
        user = User(
            username=username,
            password_hash=hash_password(password, salt),
            salt=salt,
            permissions=int(permissions),
        )
        try:
            self.db.add(user)
            self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent create of the same name
            self.db.rollback()
            raise ValueError(f"User '{username}' already exists") from e
        except SQLAlchemyError as e:
            raise self._fail("creating principal") from e

        logger.info(f"Created user {username} with permissions {permissions.to_list()}")
        return Principal.from_user(user)

    def delete_principal(self, username: str) -> bool:
        """Delete a principal.

        Args:
            username: Username to delete.

        Returns:
            bool: True if deleted, False if no such user.

        Raises:
            ValueError: If the user is the last administrator.
            StoreError: If the delete fails.
        """
        try:
            user = self.get_user(username)
            if user is None:
                return False

            if user.permissions == MAX_MASK:
                admins = self._admin_rows(lock=True)
                if len(admins) <= 1:
                    raise ValueError("Cannot delete the last administrator")

            self.db.delete(user)
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("deleting principal") from e
        except ValueError:
            self.db.rollback()
            raise

        logger.info(f"Deleted user {username}")
        return True

    def update_principal_permissions(
        self,
        username: str,
        permissions: Permissions,
    ) -> Principal | None:
        """Replace a principal's permission set.

        Args:
            username: Username to update.
            permissions: New permission set.

        Returns:
            Principal | None: Updated principal, None if no such user.

        Raises:
            ValueError: If this would demote the last administrator.
            StoreError: If the update fails.
        """
        try:
            user = self.get_user(username)
            if user is None:
                return None

            if user.permissions == MAX_MASK and permissions != Permissions.ADMIN:
                admins = self._admin_rows(lock=True)
                if len(admins) <= 1:
                    raise ValueError("Cannot remove ADMIN from the last administrator")

            user.permissions = int(permissions)
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("updating permissions") from e
        except ValueError:
            self.db.rollback()
            raise

        logger.info(f"Set permissions of {username} to {permissions.to_list()}")
        return Principal.from_user(user)

    def update_principal_password(self, username: str, password: str) -> bool:
        """Store a new password under a new salt.

        Returns:
            bool: True if updated, False if no such user.

        Raises:
            StoreError: If the update fails.
        """
        user = self.get_user(username)
        if user is None:
            return False

        user.salt = generate_salt()
        user.password_hash = hash_password(password, user.salt)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("updating password") from e

        logger.info(f"Password changed for {username}")
        return True

    def record_login(self, user: User) -> None:
        """Stamp the last login time of a user."""
        user.last_login = datetime.now(UTC)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("recording login") from e


def ensure_admin_exists(db: Session) -> Principal | None:
    """Create the bootstrap administrator when no administrator exists.

    Args:
        db: Database session.

    Returns:
        Principal | None: The created administrator, or None if one already existed.
    """
    settings = get_settings()
    store = PrincipalStore(db)

    if store.count_admins() > 0:
        return None

    username = settings.bootstrap_admin_username
    if store.get_user(username) is not None:
        # The name is taken by a non-admin account; promote it instead
        logger.warning(f"No administrator found, promoting existing user '{username}'")
        return store.update_principal_permissions(username, Permissions.ADMIN)

    password = settings.bootstrap_admin_password
    if not password:
        password = secrets.token_urlsafe(12)
        logger.warning(
            f"No administrator found, creating '{username}' with generated password: {password}"
        )
    else:
        logger.warning(f"No administrator found, creating '{username}'")

    return store.create_principal(username, password, Permissions.ADMIN)
