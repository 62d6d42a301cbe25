"""Encrypted cookie jar for the session token.

The token is serialized to JSON and sealed with JWE (direct key agreement,
AES-256-GCM). The authenticated encryption makes the cookie both
confidential and tamper-evident: anything that fails to decrypt or parse is
treated as if no cookie had been sent.
"""

import hashlib
import logging

from fastapi import Response
from jose import jwe
from jose.constants import ALGORITHMS
from jose.exceptions import JOSEError
from pydantic import ValidationError

from backoffice.auth.session import SessionToken
from backoffice.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def _encryption_key() -> bytes:
    # A256GCM needs exactly 32 bytes of key material
    return hashlib.sha256(settings.secret_key.encode("utf-8")).digest()


def encode_session_token(token: SessionToken) -> str:
    """Seal a session token into a cookie value.

    Args:
        token: Session token.

    Returns:
        str: JWE compact serialization.
    """
    sealed = jwe.encrypt(
        token.model_dump_json(),
        _encryption_key(),
        encryption=ALGORITHMS.A256GCM,
        algorithm=ALGORITHMS.DIR,
    )
    return sealed.decode("ascii")


def decode_session_token(value: str) -> SessionToken | None:
    """Open a cookie value.

    Args:
        value: Raw cookie value.

    Returns:
        SessionToken | None: Token if the value is intact and well-formed, None otherwise.
    """
    try:
        payload = jwe.decrypt(value, _encryption_key())
    except (JOSEError, ValueError):
        logger.warning("Discarding session cookie that failed to decrypt")
        return None

    try:
        return SessionToken.model_validate_json(payload)
    except ValidationError:
        logger.warning("Discarding session cookie with a malformed payload")
        return None


def set_session_cookie(response: Response, token: SessionToken) -> None:
    """Write the session cookie, replacing any previous value.

    Args:
        response: Response that carries the Set-Cookie header.
        token: Session token to store.
    """
    response.set_cookie(
        key=settings.cookie_name,
        value=encode_session_token(token),
        expires=token.expires,  # None = browser-session cookie
        path="/",
        secure=settings.secure_cookies,
        httponly=True,
        samesite=settings.cookie_samesite,
    )


def clear_session_cookie(response: Response) -> None:
    """Remove the session cookie from the client.

    Args:
        response: Response that carries the Set-Cookie header.
    """
    response.delete_cookie(
        key=settings.cookie_name,
        path="/",
        secure=settings.secure_cookies,
        httponly=True,
        samesite=settings.cookie_samesite,
    )
