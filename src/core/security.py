"""Password hashing helpers backed by bcrypt."""

import bcrypt

from src.core.config import get_settings


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a plaintext password.

    Args:
        password: The plaintext password.
        rounds: bcrypt cost factor. Defaults to the configured value.

    Returns:
        str: The bcrypt hash, including salt and cost.
    """
    cost = rounds if rounds is not None else get_settings().security_config.bcrypt_rounds
    salt = bcrypt.gensalt(rounds=cost)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash.

    Malformed hashes never match.
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False
