"""Authentication API routes."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from backoffice.auth.cookies import clear_session_cookie, decode_session_token, set_session_cookie
from backoffice.auth.permissions import Permissions
from backoffice.auth.schemas import (
    LoginRequest,
    MessageResponse,
    PasswordChange,
    PermissionsUpdate,
    PrincipalResponse,
    UserCreate,
)
from backoffice.auth.service import AuthService, get_auth_service
from backoffice.auth.store import StoreError
from backoffice.config import get_settings
from backoffice.dependencies import CurrentAdmin, CurrentPrincipal, get_db

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter()


def get_service(db: Annotated[Session, Depends(get_db)]) -> AuthService:
    """Get auth service dependency."""
    return get_auth_service(db)


def _store_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )


@router.post("/login", response_model=PrincipalResponse)
def login(
    data: LoginRequest,
    service: Annotated[AuthService, Depends(get_service)],
    response: Response,
):
    """Login with username and password.

    Args:
        data: Login credentials and optional session lifetime.
        service: Auth service.
        response: FastAPI response object.

    Returns:
        PrincipalResponse: The logged-in user and their permissions.

    Raises:
        HTTPException: 401 if the credentials are invalid, whichever part is wrong.
    """
    try:
        token = service.login(data)
    except StoreError:
        raise _store_unavailable()

    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    set_session_cookie(response, token)
    return PrincipalResponse(username=token.username, permissions=token.permissions.to_list())


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request, response: Response):
    """Logout by removing the session cookie.

    There is no server-side revocation: a copy of the cookie held elsewhere
    stays valid until it expires or the account is deleted.

    Args:
        request: FastAPI request object.
        response: FastAPI response object.

    Returns:
        MessageResponse: Confirmation.

    Raises:
        HTTPException: 401 if no valid session cookie was sent.
    """
    raw = request.cookies.get(settings.cookie_name)
    token = decode_session_token(raw) if raw is not None else None

    if token is None or token.is_expired():
        headers = None
        if raw is not None:
            clear_session_cookie(response)
            headers = {"set-cookie": response.headers["set-cookie"]}
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers=headers,
        )

    clear_session_cookie(response)
    logger.info(f"Logged out {token.username}")
    return MessageResponse(message="Logged out")


@router.get("/status", response_model=PrincipalResponse)
def auth_status(current_user: CurrentPrincipal):
    """Get the logged-in user and their current permissions.

    Args:
        current_user: Current authenticated principal.

    Returns:
        PrincipalResponse: Username and permission names.
    """
    return PrincipalResponse.from_principal(current_user)


@router.post("/change_password", response_model=MessageResponse)
def change_password(
    data: PasswordChange,
    current_user: CurrentPrincipal,
    service: Annotated[AuthService, Depends(get_service)],
):
    """Change the logged-in user's password.

    Args:
        data: Current and new password.
        current_user: Current authenticated principal.
        service: Auth service.

    Returns:
        MessageResponse: Confirmation.

    Raises:
        HTTPException: 400 if the current password is wrong.
    """
    try:
        service.change_password(current_user, data)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except StoreError:
        raise _store_unavailable()
    return MessageResponse(message="Password changed")


@router.get("/permissions", response_model=list[str])
def list_permissions(_admin: CurrentAdmin):
    """List every capability name in canonical order.

    Only admins can access this endpoint.
    """
    return Permissions.names()


@router.get("/users", response_model=list[PrincipalResponse])
def list_users(
    _admin: CurrentAdmin,
    service: Annotated[AuthService, Depends(get_service)],
):
    """List all users.

    Only admins can access this endpoint.

    Args:
        service: Auth service.

    Returns:
        list[PrincipalResponse]: Users and their permissions.
    """
    try:
        return [PrincipalResponse.from_principal(p) for p in service.list_users()]
    except StoreError:
        raise _store_unavailable()


@router.post("/users", response_model=PrincipalResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    data: UserCreate,
    _admin: CurrentAdmin,
    service: Annotated[AuthService, Depends(get_service)],
):
    """Create a user.

    Only admins can access this endpoint.

    Args:
        data: Username, password and permission names.
        service: Auth service.

    Returns:
        PrincipalResponse: Created user.

    Raises:
        HTTPException: 400 if the username is taken.
    """
    try:
        principal = service.create_user(data)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except StoreError:
        raise _store_unavailable()
    return PrincipalResponse.from_principal(principal)


@router.put("/users/{username}/permissions", response_model=PrincipalResponse)
def update_user_permissions(
    username: str,
    data: PermissionsUpdate,
    _admin: CurrentAdmin,
    service: Annotated[AuthService, Depends(get_service)],
):
    """Replace a user's permissions.

    Only admins can access this endpoint. Takes effect on the user's next
    request, whatever their cookie says.

    Args:
        username: Username.
        data: New permission names.
        service: Auth service.

    Returns:
        PrincipalResponse: Updated user.

    Raises:
        HTTPException: 404 if not found, 400 if this would demote the last admin.
    """
    try:
        principal = service.update_permissions(username, data.permissions)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except StoreError:
        raise _store_unavailable()

    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return PrincipalResponse.from_principal(principal)


@router.delete("/users/{username}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    username: str,
    _admin: CurrentAdmin,
    service: Annotated[AuthService, Depends(get_service)],
):
    """Delete a user.

    Only admins can access this endpoint. Sessions of the deleted user are
    rejected on their next request.

    Args:
        username: Username.
        service: Auth service.

    Raises:
        HTTPException: 404 if not found, 400 if this is the last admin.
    """
    try:
        deleted = service.delete_user(username)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except StoreError:
        raise _store_unavailable()

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
