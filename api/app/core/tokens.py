"""Access/refresh token issuing and verification.

Access tokens carry the full identity (id, uuid, email, role) and are short
lived. Refresh tokens carry only id and uuid, live longer, and are signed with
a separate secret so one can never be replayed as the other.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import jwt

from app.core.config import Settings

TOKEN_ALGORITHM = "HS256"


class TokenError(Exception):
    """Raised when a token cannot be verified."""


class TokenExpiredError(TokenError):
    """Raised when a token signature is valid but it has expired."""


@dataclass(slots=True)
class TokenPair:
    access_token: str
    refresh_token: str


def issue_token_pair(*, user_id: int, uuid: str, email: str, role: str, settings: Settings) -> TokenPair:
    now = datetime.now(timezone.utc)
    access_token = _encode(
        {"userId": user_id, "uuid": uuid, "email": email, "role": role, "typ": "access"},
        secret=settings.jwt_access_secret,
        expires_at=now + timedelta(minutes=settings.jwt_access_expiry_minutes),
        settings=settings,
        issued_at=now,
    )
    refresh_token = _encode(
        {"userId": user_id, "uuid": uuid, "typ": "refresh"},
        secret=settings.jwt_refresh_secret,
        expires_at=now + timedelta(days=settings.jwt_refresh_expiry_days),
        settings=settings,
        issued_at=now,
    )
    return TokenPair(access_token=access_token, refresh_token=refresh_token)


def decode_access_token(token: str, *, settings: Settings) -> dict[str, Any]:
    return _decode(token, secret=settings.jwt_access_secret, expected_type="access", settings=settings)


def decode_refresh_token(token: str, *, settings: Settings) -> dict[str, Any]:
    return _decode(token, secret=settings.jwt_refresh_secret, expected_type="refresh", settings=settings)


def _encode(
    claims: dict[str, Any],
    *,
    secret: str,
    expires_at: datetime,
    issued_at: datetime,
    settings: Settings,
) -> str:
    payload = {
        **claims,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": issued_at,
        "exp": expires_at,
        # Two logins inside the same second must still yield distinct refresh tokens.
        "jti": uuid4().hex,
    }
    return jwt.encode(payload, secret, algorithm=TOKEN_ALGORITHM)


def _decode(token: str, *, secret: str, expected_type: str, settings: Settings) -> dict[str, Any]:
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[TOKEN_ALGORITHM],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpiredError("token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError("invalid token") from exc

    if claims.get("typ") != expected_type:
        raise TokenError("unexpected token type")
    return claims
