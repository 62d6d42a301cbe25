"""Authentication module."""

from backoffice.auth.permissions import Permissions
from backoffice.auth.router import router
from backoffice.auth.service import AuthService
from backoffice.auth.session import SessionToken
from backoffice.auth.store import Principal, PrincipalStore, StoreError
from backoffice.auth.utils import generate_salt, hash_password, verify_password

__all__ = [
    "router",
    "AuthService",
    "Permissions",
    "Principal",
    "PrincipalStore",
    "SessionToken",
    "StoreError",
    "generate_salt",
    "hash_password",
    "verify_password",
]
