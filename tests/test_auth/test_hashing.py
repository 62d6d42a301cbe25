"""Tests for password hashing."""

import re

from backoffice.auth.utils import generate_salt, hash_password, verify_password


class TestSalt:
    """Tests for salt generation."""

    def test_salt_is_32_hex_characters(self):
        """Test salt format."""
        assert re.fullmatch(r"[0-9a-f]{32}", generate_salt())

    def test_salts_are_unique(self):
        """Test consecutive salts differ."""
        assert len({generate_salt() for _ in range(50)}) == 50


class TestHashPassword:
    """Tests for the salted hash."""

    def test_deterministic(self):
        """Test the same password and salt give the same hash."""
        salt = generate_salt()
        assert hash_password("hunter22", salt) == hash_password("hunter22", salt)

    def test_hex_digest(self):
        """Test the hash is 64 hex characters."""
        assert re.fullmatch(r"[0-9a-f]{64}", hash_password("hunter22", generate_salt()))

    def test_different_password_different_hash(self):
        """Test a different password changes the hash."""
        salt = generate_salt()
        assert hash_password("hunter22", salt) != hash_password("hunter23", salt)

    def test_different_salt_different_hash(self):
        """Test the salt changes the hash."""
        assert hash_password("hunter22", generate_salt()) != hash_password(
            "hunter22", generate_salt()
        )

    def test_hash_does_not_contain_password(self):
        """Test the password is not recoverable from the output."""
        assert "hunter22" not in hash_password("hunter22", generate_salt())


class TestVerifyPassword:
    """Tests for password verification."""

    def test_correct_password(self):
        """Test the right password verifies."""
        salt = generate_salt()
        stored = hash_password("correct horse", salt)
        assert verify_password("correct horse", salt, stored)

    def test_wrong_password(self):
        """Test a wrong password fails."""
        salt = generate_salt()
        stored = hash_password("correct horse", salt)
        assert not verify_password("battery staple", salt, stored)

    def test_wrong_salt(self):
        """Test the right password with another salt fails."""
        stored = hash_password("correct horse", generate_salt())
        assert not verify_password("correct horse", generate_salt(), stored)
