"""Session token carried in the authentication cookie."""

from datetime import UTC, datetime, timedelta

from pydantic import BaseModel

from backoffice.auth.permissions import Permissions


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class SessionToken(BaseModel):
    """Cookie payload.

    The permission snapshot is a cache of the stored value at the last
    refresh; authorization decisions always use a fresh store lookup.

    Attributes:
        username: Principal the session belongs to.
        expires_at: Absolute expiry as a UNIX timestamp, None for a browser session.
        permissions: Permission snapshot at the last refresh.
    """

    username: str
    expires_at: int | None = None
    permissions: Permissions = Permissions.NONE

    @classmethod
    def issue(
        cls,
        username: str,
        permissions: Permissions,
        expires_in: int | None = None,
    ) -> "SessionToken":
        """Create the token handed out at login.

        Args:
            username: Authenticated username.
            permissions: Stored permissions at login time.
            expires_in: Lifetime in seconds, None for a browser-session cookie.

        Returns:
            SessionToken: New token.
        """
        expires_at = None
        if expires_in is not None:
            expires_at = int((utcnow() + timedelta(seconds=expires_in)).timestamp())
        return cls(username=username, expires_at=expires_at, permissions=permissions)

    def refreshed(self, permissions: Permissions) -> "SessionToken":
        """Return a replacement token with a new permission snapshot.

        The absolute expiry is kept as issued, so refreshing never extends a session.
        """
        return self.model_copy(update={"permissions": Permissions(permissions)})

    @property
    def expires(self) -> datetime | None:
        """Expiry as an aware datetime, or None for a browser session."""
        if self.expires_at is None:
            return None
        return datetime.fromtimestamp(self.expires_at, UTC)

    def is_expired(self) -> bool:
        """Check whether the absolute expiry has passed."""
        return self.expires_at is not None and self.expires_at <= utcnow().timestamp()
