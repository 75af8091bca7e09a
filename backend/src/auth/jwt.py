"""Access tokens (HS256 JWT).

Claims:
    sub    user id (UUID string)
    role   vendor | consultant | admin, informational; the API always
           reloads the user and trusts the stored role
    email  for log lines and the frontend header
    iat / exp

There are no refresh tokens; clients log in again after JWT_EXPIRY_MINUTES.
JWT_SECRET and JWT_EXPIRY_MINUTES are read from the environment on each
call so tests can change them with monkeypatch.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from uuid import UUID

import jwt

ALGORITHM = "HS256"
DEFAULT_EXPIRY_MINUTES = 60


def _get_jwt_secret() -> str:
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise ValueError("JWT_SECRET environment variable is not set")
    return secret


def _get_jwt_expiry_minutes() -> int:
    """JWT_EXPIRY_MINUTES, falling back to 60 when unset or not a number."""
    try:
        return int(os.getenv("JWT_EXPIRY_MINUTES", str(DEFAULT_EXPIRY_MINUTES)))
    except ValueError:
        return DEFAULT_EXPIRY_MINUTES


def create_access_token(user_id: UUID, role: str, email: str) -> str:
    """Sign an access token for a user.

    Raises:
        ValueError: If JWT_SECRET is not set
    """
    issued_at = datetime.now(timezone.utc)
    expires_at = issued_at + timedelta(minutes=_get_jwt_expiry_minutes())
    claims = {
        "sub": str(user_id),
        "role": role,
        "email": email,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(claims, _get_jwt_secret(), algorithm=ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry and return the claims.

    Raises:
        jwt.ExpiredSignatureError: token is past exp
        jwt.InvalidTokenError: malformed or tampered token
        ValueError: If JWT_SECRET is not set
    """
    return jwt.decode(token, _get_jwt_secret(), algorithms=[ALGORITHM])
