"""Dependency injection for FastAPI."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from backoffice.auth.cookies import (
    clear_session_cookie,
    decode_session_token,
    set_session_cookie,
)
from backoffice.auth.permissions import Permissions
from backoffice.auth.store import Principal, PrincipalStore, StoreError
from backoffice.config import get_settings
from backoffice.db.database import get_db

logger = logging.getLogger(__name__)

settings = get_settings()


def get_principal_store(db: Annotated[Session, Depends(get_db)]) -> PrincipalStore:
    """Get the principal store for this request.

    Args:
        db: Database session.

    Returns:
        PrincipalStore: Store bound to the request's session.
    """
    return PrincipalStore(db)


class AuthGuard:
    """Authenticate the session cookie and enforce a permission set.

    Create one per route at definition time::

        @router.post("/orders")
        def create_order(principal: Annotated[Principal, Depends(AuthGuard(Permissions.ORDER_WRITE))]):
            ...

    For every request the guard decodes the cookie, re-reads the principal
    from the store and rewrites the cookie with the fresh permission
    snapshot before checking authorization, so a valid session keeps being
    refreshed even on routes it may not use. Only the store's permissions
    decide access; the snapshot in the cookie is never trusted.

    Outcomes:
        - no cookie: 401
        - undecodable or expired cookie: cookie cleared, 401
        - user no longer exists: cookie cleared, 401
        - store failure: 500, cookie untouched
        - insufficient permissions: cookie refreshed, 403
        - success: cookie refreshed, principal returned

    The call is synchronous so FastAPI runs the store round-trip in its
    worker thread pool.
    """

    def __init__(self, required: Permissions = Permissions.NONE):
        """Initialize auth guard.

        Args:
            required: Permission set a principal must hold. NONE admits any
                authenticated principal.
        """
        self.required = Permissions(required)

    @staticmethod
    def _reject(response: Response, status_code: int, detail: str) -> HTTPException:
        # Raised exceptions bypass the dependency response, so carry the cookie along
        headers = None
        if "set-cookie" in response.headers:
            headers = {"set-cookie": response.headers["set-cookie"]}
        return HTTPException(status_code=status_code, detail=detail, headers=headers)

    def __call__(
        self,
        request: Request,
        response: Response,
        store: Annotated[PrincipalStore, Depends(get_principal_store)],
    ) -> Principal:
        """Resolve the authenticated principal for a request.

        Args:
            request: Incoming request.
            response: Response the refreshed cookie is written to.
            store: Principal store.

        Returns:
            Principal: Principal with permissions as currently stored.

        Raises:
            HTTPException: 401, 403 or 500 as listed on the class.
        """
        raw = request.cookies.get(settings.cookie_name)
        if raw is None:
            raise self._reject(response, status.HTTP_401_UNAUTHORIZED, "Not authenticated")

        token = decode_session_token(raw)
        if token is None:
            clear_session_cookie(response)
            raise self._reject(response, status.HTTP_401_UNAUTHORIZED, "Not authenticated")

        if token.is_expired():
            logger.info(f"Session for {token.username} has expired, removing cookie")
            clear_session_cookie(response)
            raise self._reject(response, status.HTTP_401_UNAUTHORIZED, "Session expired")

        try:
            principal = store.find_principal_by_identity(token.username)
        except StoreError:
            # Possibly transient: keep the cookie so the client can retry
            raise self._reject(
                response, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
            )

        if principal is None:
            logger.info(f"User {token.username} no longer exists, removing cookie")
            clear_session_cookie(response)
            raise self._reject(response, status.HTTP_401_UNAUTHORIZED, "Not authenticated")

        set_session_cookie(response, token.refreshed(principal.permissions))
        logger.info(f"Refreshed session for {principal.username}")

        if not principal.permissions.contains(self.required):
            logger.info(
                f"User {principal.username} lacks {self.required.to_list()} for {request.url.path}"
            )
            raise self._reject(response, status.HTTP_403_FORBIDDEN, "Insufficient permissions")

        return principal


# Type aliases for cleaner dependency injection
DbSession = Annotated[Session, Depends(get_db)]
CurrentPrincipal = Annotated[Principal, Depends(AuthGuard())]
CurrentAdmin = Annotated[Principal, Depends(AuthGuard(Permissions.ADMIN))]
