import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.config import Settings, get_settings
from app.core.passwords import hash_password, verify_password
from app.core.rate_limit import limit_auth_attempts
from app.core.tokens import TokenError, decode_refresh_token, issue_token_pair
from app.schemas.auth import AuthTokensOut, AuthUserOut, LoginRequest, RefreshRequest, RegisterRequest
from app.schemas.common import ApiResponse
from app.services.repository import (
    RepositoryConflictError,
    RepositoryUnavailableError,
    RepositoryValidationError,
    get_repository,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/register",
    response_model=ApiResponse[AuthTokensOut],
    status_code=status.HTTP_201_CREATED,
)
@limit_auth_attempts
async def register(
    request: Request,
    payload: RegisterRequest,
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
) -> ApiResponse[AuthTokensOut]:
    # bcrypt is CPU bound; keep it off the event loop.
    password_hash = await asyncio.to_thread(hash_password, payload.password, rounds=settings.bcrypt_rounds)

    try:
        user = await repository.create_user(
            email=payload.email,
            password_hash=password_hash,
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
            role=payload.role,
        )
        tokens = issue_token_pair(
            user_id=user["id"],
            uuid=user["uuid"],
            email=user["email"],
            role=user["role"],
            settings=settings,
        )
        await repository.store_refresh_token(user_id=user["id"], refresh_token=tokens.refresh_token)
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    logger.info("user registered user_id=%s role=%s", user["id"], user["role"])
    return ApiResponse[AuthTokensOut](
        message="User registered successfully.",
        data=AuthTokensOut(
            user=AuthUserOut(**user),
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        ),
    )


@router.post("/login", response_model=ApiResponse[AuthTokensOut])
@limit_auth_attempts
async def login(
    request: Request,
    payload: LoginRequest,
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
) -> ApiResponse[AuthTokensOut]:
    try:
        credentials = await repository.get_user_credentials(email=payload.email)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    password_ok = credentials is not None and await asyncio.to_thread(
        verify_password, payload.password, credentials.password_hash
    )
    if credentials is None or not password_ok:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password.")
    if not credentials.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been deactivated. Please contact support.",
        )

    tokens = issue_token_pair(
        user_id=credentials.id,
        uuid=credentials.uuid,
        email=credentials.email,
        role=credentials.role,
        settings=settings,
    )
    try:
        await repository.store_refresh_token(
            user_id=credentials.id,
            refresh_token=tokens.refresh_token,
            record_login=True,
        )
        profile = await repository.get_user_profile(credentials.id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return ApiResponse[AuthTokensOut](
        message="Login successful.",
        data=AuthTokensOut(
            user=AuthUserOut(**profile),
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        ),
    )


@router.post("/refresh-token", response_model=ApiResponse[AuthTokensOut])
@limit_auth_attempts
async def refresh_token(
    request: Request,
    payload: RefreshRequest,
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
) -> ApiResponse[AuthTokensOut]:
    try:
        claims = decode_refresh_token(payload.refresh_token, settings=settings)
        user_id = int(claims["userId"])
    except (TokenError, KeyError, TypeError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token. Please log in again.",
        ) from exc

    try:
        credentials = await repository.get_user_credentials(user_id=user_id)
        if credentials is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found.")
        if not credentials.is_active:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Your account has been deactivated.")

        if credentials.refresh_token != payload.refresh_token:
            # A stale token was replayed: revoke the current one so both holders must log in again.
            await repository.store_refresh_token(user_id=user_id, refresh_token=None)
            logger.warning("refresh token reuse detected user_id=%s", user_id)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Refresh token has been revoked. Please log in again.",
            )

        tokens = issue_token_pair(
            user_id=credentials.id,
            uuid=credentials.uuid,
            email=credentials.email,
            role=credentials.role,
            settings=settings,
        )
        await repository.store_refresh_token(user_id=credentials.id, refresh_token=tokens.refresh_token)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return ApiResponse[AuthTokensOut](
        message="Tokens refreshed successfully.",
        data=AuthTokensOut(access_token=tokens.access_token, refresh_token=tokens.refresh_token),
    )
