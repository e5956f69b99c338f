import logging

from fastapi import Depends, Header, HTTPException, status

from app.core.auth import Principal, principal_from_claims
from app.core.config import Settings, get_settings
from app.core.tokens import TokenError, TokenExpiredError, decode_access_token

logger = logging.getLogger(__name__)


async def get_current_principal(
    settings: Settings = Depends(get_settings),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token is required. Please provide a valid Bearer token.",
        )

    token = authorization.split(" ", maxsplit=1)[1].strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token format.")

    try:
        claims = decode_access_token(token, settings=settings)
    except TokenExpiredError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token has expired. Please refresh your token.",
        ) from exc
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token. Please log in again.",
        ) from exc

    try:
        return principal_from_claims(claims)
    except (KeyError, TypeError, ValueError) as exc:
        logger.warning("access token missing identity claims: %s", sorted(claims))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication failed.") from exc
