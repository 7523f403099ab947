"""Unit tests for src/core/security.py module."""

import pytest

from src.core.security import hash_password, verify_password


@pytest.mark.unit
class TestPasswordHashing:
    """Test bcrypt password hashing."""

    def test_hash_and_verify(self) -> None:
        """Test that a hash verifies only its own password."""
        # Arrange
        password_hash = hash_password("s3cret-password", rounds=4)

        # Act & Assert
        assert password_hash.startswith("$2b$04$")
        assert verify_password("s3cret-password", password_hash)
        assert not verify_password("wrong-password", password_hash)

    def test_hashes_are_salted(self) -> None:
        """Test that hashing twice gives different hashes."""
        assert hash_password("same", rounds=4) != hash_password("same", rounds=4)

    def test_malformed_hash_never_matches(self) -> None:
        """Test that a corrupt stored hash is a failed check, not an error."""
        assert verify_password("anything", "not-a-bcrypt-hash") is False

    def test_uses_configured_rounds(self) -> None:
        """Test that the configured cost factor is the default."""
        assert hash_password("pw").startswith("$2b$04$")
