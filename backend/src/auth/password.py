"""Password hashing (Argon2id with a server-side pepper) and strength rules.

The pepper (PASSWORD_PEPPER) is appended before hashing and never stored,
so a leaked user table alone is not enough for offline guessing.
"""

import os
import re
from typing import Tuple

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

# OWASP Argon2id baseline: 64 MiB, 3 passes, 4 lanes
_hasher = PasswordHasher(
    memory_cost=65536,
    time_cost=3,
    parallelism=4,
    hash_len=32,
    salt_len=16,
    type=Type.ID,
)

MIN_PASSWORD_LENGTH = 8

_STRENGTH_RULES = (
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"\d"), "Password must contain at least one digit"),
)


def _peppered(password: str) -> str:
    pepper = os.getenv("PASSWORD_PEPPER")
    if not pepper:
        raise ValueError("PASSWORD_PEPPER environment variable is not set")
    return password + pepper


def hash_password(password: str) -> str:
    """Hash a password for storage.

    Raises:
        ValueError: empty password or PASSWORD_PEPPER not set
    """
    if not password:
        raise ValueError("Password cannot be empty")
    return _hasher.hash(_peppered(password))


def verify_password(password: str, password_hash: str) -> bool:
    """True when the password matches; False for any mismatch or unusable hash."""
    if not password or not password_hash:
        return False
    try:
        return _hasher.verify(password_hash, _peppered(password))
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def validate_password_strength(password: str) -> Tuple[bool, str]:
    """Check the account password policy.

    At least 8 characters with an uppercase letter, a lowercase letter and
    a digit.

    Example:
        >>> validate_password_strength("Vendor2025")
        (True, '')
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
    for pattern, message in _STRENGTH_RULES:
        if not pattern.search(password):
            return False, message
    return True, ""
