# app/core/security.py
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

import jwt  # PyJWT
from app.core.config import settings

# Session tokens are minted by the identity provider. We only verify them;
# `create_session_token` exists for local development and tests (HS256).


def create_session_token(
    subject: Union[str, Any],
    expires_delta: Optional[timedelta] = None,
    data: Optional[dict] = None
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=60))

    to_encode = {
        "sub": str(subject),
        "exp": expire,
        "iat": now,
        "nbf": now,
    }
    if data:
        to_encode.update(data)

    return jwt.encode(to_encode, settings.SESSION_JWT_KEY, algorithm=settings.SESSION_JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """
    Verifies signature and expiry. Raises jwt.InvalidTokenError
    (ExpiredSignatureError included) for the caller to map to 401.
    """
    return jwt.decode(
        token,
        settings.SESSION_JWT_KEY,
        algorithms=[settings.SESSION_JWT_ALGORITHM],
        options={"verify_exp": True, "require": ["sub", "exp"]},
    )
