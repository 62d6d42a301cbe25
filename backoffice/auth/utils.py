"""Password hashing utilities."""

import hmac
import secrets

import bcrypt

from backoffice.config import get_settings

settings = get_settings()

HASH_BYTES = 32


def generate_salt() -> str:
    """Generate a random per-user salt.

    Returns:
        str: 32-character hex salt from a CSPRNG.
    """
    return secrets.token_hex(16)


def hash_password(password: str, salt: str) -> str:
    """Hash a password with its salt.

    Uses bcrypt-pbkdf, so the same (password, salt) pair always yields the
    same digest while each guess costs ``password_hash_rounds`` bcrypt runs.

    Args:
        password: Plain text password.
        salt: Hex salt from :func:`generate_salt`.

    Returns:
        str: 64-character hex digest.
    """
    derived = bcrypt.kdf(
        password=password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        desired_key_bytes=HASH_BYTES,
        rounds=settings.password_hash_rounds,
        # The work factor is operator configuration, validated by Settings.
        ignore_few_rounds=True,
    )
    return derived.hex()


def verify_password(password: str, salt: str, expected_hash: str) -> bool:
    """Verify a password against its stored hash.

    Args:
        password: Plain text password.
        salt: Stored salt.
        expected_hash: Stored hex digest.

    Returns:
        bool: True if password matches, False otherwise.
    """
    return hmac.compare_digest(hash_password(password, salt), expected_hash)
