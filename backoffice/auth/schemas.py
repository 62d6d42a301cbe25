"""Pydantic schemas for authentication."""

from pydantic import BaseModel, Field, field_validator

from backoffice.auth.permissions import PERMISSION_NAMES
from backoffice.auth.store import Principal


def _check_permission_names(names: list[str]) -> list[str]:
    unknown = [name for name in names if name not in PERMISSION_NAMES]
    if unknown:
        raise ValueError(f"Unknown permissions: {', '.join(unknown)}")
    return names


class LoginRequest(BaseModel):
    """Schema for user login.

    Attributes:
        username: Username.
        password: Password.
        expires_in: Session lifetime in seconds; omit for a browser-session cookie.
    """

    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=100)
    expires_in: int | None = Field(None, gt=0)


class PasswordChange(BaseModel):
    """Schema for changing password.

    Attributes:
        current_password: Current password.
        new_password: New password.
        new_password_confirm: New password confirmation.
    """

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=100)
    new_password_confirm: str

    @field_validator("new_password_confirm")
    @classmethod
    def passwords_match(cls, v: str, info) -> str:
        """Validate that passwords match."""
        if "new_password" in info.data and v != info.data["new_password"]:
            raise ValueError("Passwords do not match")
        return v


class UserCreate(BaseModel):
    """Schema for creating a user (admin only).

    Attributes:
        username: Unique username.
        password: Initial password.
        permissions: Capability names to grant.
    """

    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=8, max_length=100)
    permissions: list[str] = []

    @field_validator("permissions")
    @classmethod
    def known_permissions(cls, v: list[str]) -> list[str]:
        """Validate that every permission name exists."""
        return _check_permission_names(v)


class PermissionsUpdate(BaseModel):
    """Schema for replacing a user's permissions.

    Attributes:
        permissions: Capability names to grant.
    """

    permissions: list[str]

    @field_validator("permissions")
    @classmethod
    def known_permissions(cls, v: list[str]) -> list[str]:
        """Validate that every permission name exists."""
        return _check_permission_names(v)


class PrincipalResponse(BaseModel):
    """Schema for a principal in API responses.

    Attributes:
        username: Username.
        permissions: Granted capability names.
    """

    username: str
    permissions: list[str]

    @classmethod
    def from_principal(cls, principal: Principal) -> "PrincipalResponse":
        """Build the response for a principal."""
        return cls(username=principal.username, permissions=principal.permissions.to_list())


class MessageResponse(BaseModel):
    """Schema for simple acknowledgement responses."""

    message: str
