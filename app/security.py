"""
JWT creation and verification for access and refresh credentials.

Both credentials carry {sub: user id, email, role, type}. Access and refresh
credentials are signed with distinct secrets, so one can never be replayed as
the other. Algorithm: HS256.
"""
from datetime import datetime, timedelta, UTC

from jose import jwt, JWTError

from config import (
    JWT_ACCESS_TTL_SECONDS,
    JWT_ALGORITHM,
    JWT_REFRESH_SECRET,
    JWT_REFRESH_TTL_SECONDS,
    JWT_SECRET,
)

ACCESS = "access"
REFRESH = "refresh"


def _encode(user, token_type: str, secret: str, ttl_seconds: int) -> str:
    payload = {
        "sub": user.id,
        "email": user.email,
        "role": user.role,
        "type": token_type,
        "exp": datetime.now(UTC) + timedelta(seconds=ttl_seconds),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def _decode(token: str, secret: str, token_type: str) -> dict:
    payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    if payload.get("type") != token_type:
        raise JWTError(f"Expected a {token_type} token")
    return payload


def create_access_token(user) -> str:
    """Short-lived credential presented as a Bearer token on API calls."""
    return _encode(user, ACCESS, JWT_SECRET, JWT_ACCESS_TTL_SECONDS)


def create_refresh_token(user) -> str:
    """Long-lived credential exchanged for new access tokens via /auth/refresh."""
    return _encode(user, REFRESH, JWT_REFRESH_SECRET, JWT_REFRESH_TTL_SECONDS)


def decode_access_token(token: str) -> dict:
    """Decode and verify an access token; raises JWTError if invalid or expired."""
    return _decode(token, JWT_SECRET, ACCESS)


def decode_refresh_token(token: str) -> dict:
    """Decode and verify a refresh token; raises JWTError if invalid or expired."""
    return _decode(token, JWT_REFRESH_SECRET, REFRESH)
