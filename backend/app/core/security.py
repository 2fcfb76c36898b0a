"""Security utilities: JWT access tokens for staff and customers.

Tokens carry ``sub`` (staff user id or customer id) and ``role``. They are
issued by the auth front end; this service only verifies them.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from jwt.exceptions import PyJWTError

from app.core.config import settings

logger = logging.getLogger(__name__)


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token with a unique JTI."""
    now = datetime.now(timezone.utc)
    claims = {
        **data,
        "iat": now,
        "exp": now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes)),
        "jti": secrets.token_urlsafe(16),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def create_actor_token(role: str, subject: int, expires_delta: timedelta | None = None) -> str:
    """Token for a staff user or customer, as the auth front end issues them."""
    return create_access_token({"sub": str(subject), "role": role}, expires_delta)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a token. Returns None if invalid, expired or missing claims."""
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require": ["exp", "sub", "role"]},
        )
    except PyJWTError as e:
        logger.debug(f"JWT decode error: {e}")
        return None
