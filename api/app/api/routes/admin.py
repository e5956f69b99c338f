import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.auth import Principal, UserRole
from app.core.config import Settings, get_settings
from app.core.security import get_current_principal
from app.schemas.businesses import AdminBusinessOut
from app.schemas.categories import AdminCategoryOut
from app.schemas.common import ApiResponse, PaginatedResponse, build_pagination
from app.schemas.posts import (
    AdminStatsOut,
    ModeratedPostOut,
    PostListData,
    PostOut,
    PostStatusFilter,
    PostTypeRequest,
    RejectPostRequest,
)
from app.schemas.users import UserProfileOut, UserRoleFilter
from app.services.moderation import (
    ContentKind,
    ModerationDecision,
    PostFilters,
    UnknownContentTypeError,
    resolve_content_kind,
)
from app.services.repository import (
    RepositoryForbiddenError,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    get_repository,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _require_admin(principal: Principal) -> None:
    try:
        principal.require_roles({UserRole.ADMIN.value})
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc


def _resolve_kind(value: str | None) -> ContentKind:
    try:
        return resolve_content_kind(value)
    except UnknownContentTypeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/stats", response_model=ApiResponse[AdminStatsOut])
async def get_stats(
    principal=Depends(get_current_principal),
    repository=Depends(get_repository),
) -> ApiResponse[AdminStatsOut]:
    _require_admin(principal)

    try:
        stats = await repository.get_admin_stats()
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return ApiResponse[AdminStatsOut](message="Dashboard stats retrieved.", data=AdminStatsOut(**stats))


@router.get("/users", response_model=PaginatedResponse[list[UserProfileOut]])
async def list_users(
    principal=Depends(get_current_principal),
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    role: UserRoleFilter | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
) -> PaginatedResponse[list[UserProfileOut]]:
    _require_admin(principal)
    page_size = min(limit or settings.default_page_size, settings.max_page_size)

    try:
        rows, total = await repository.list_users(
            role=role,
            search=search,
            limit=page_size,
            offset=(page - 1) * page_size,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return PaginatedResponse[list[UserProfileOut]](
        message="Users retrieved successfully.",
        data=[UserProfileOut(**row) for row in rows],
        pagination=build_pagination(page=page, limit=page_size, total=total),
    )


@router.patch("/users/{user_id}/toggle-status", response_model=ApiResponse[UserProfileOut])
async def toggle_user_status(
    user_id: int,
    principal=Depends(get_current_principal),
    repository=Depends(get_repository),
) -> ApiResponse[UserProfileOut]:
    _require_admin(principal)

    try:
        row = await repository.toggle_user_active(user_id)
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryForbiddenError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    state = "activated" if row["is_active"] else "deactivated"
    logger.info("user %s user_id=%s actor_id=%s", state, user_id, principal.user_id)
    return ApiResponse[UserProfileOut](message=f"User {state} successfully.", data=UserProfileOut(**row))


@router.get("/businesses", response_model=PaginatedResponse[list[AdminBusinessOut]])
async def list_businesses(
    principal=Depends(get_current_principal),
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    business_status: PostStatusFilter | None = Query(default=None, alias="status"),
    search: str | None = Query(default=None, max_length=200),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1),
) -> PaginatedResponse[list[AdminBusinessOut]]:
    _require_admin(principal)
    page_size = min(limit, settings.max_page_size)

    try:
        rows, total = await repository.list_admin_businesses(
            status=business_status,
            search=search,
            limit=page_size,
            offset=(page - 1) * page_size,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return PaginatedResponse[list[AdminBusinessOut]](
        message="Businesses retrieved successfully.",
        data=[AdminBusinessOut(**row) for row in rows],
        pagination=build_pagination(page=page, limit=page_size, total=total),
    )


@router.patch("/businesses/{business_id}/toggle-status", response_model=ApiResponse[ModeratedPostOut])
async def toggle_business_status(
    business_id: int,
    principal=Depends(get_current_principal),
    repository=Depends(get_repository),
) -> ApiResponse[ModeratedPostOut]:
    _require_admin(principal)
    return await _toggle_content(
        repository=repository,
        kind=ContentKind.BUSINESS,
        content_id=business_id,
        actor_id=principal.user_id,
    )


@router.get("/posts", response_model=ApiResponse[PostListData])
async def list_posts(
    principal=Depends(get_current_principal),
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    post_status: PostStatusFilter | None = Query(default=None, alias="status"),
    post_type: str | None = Query(default=None, alias="type"),
    search: str | None = Query(default=None, max_length=200),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
) -> ApiResponse[PostListData]:
    _require_admin(principal)

    filters = PostFilters(
        status=post_status,
        type=post_type,
        search=search,
        page=page,
        limit=min(limit or settings.default_page_size, settings.max_page_size),
    )
    try:
        rows = await repository.list_posts(filters)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return ApiResponse[PostListData](
        message="Posts retrieved successfully.",
        data=PostListData(posts=[PostOut(**row) for row in rows]),
    )


@router.patch("/posts/{post_id}/approve", response_model=ApiResponse[ModeratedPostOut])
async def approve_post(
    post_id: int,
    payload: PostTypeRequest | None = None,
    principal=Depends(get_current_principal),
    repository=Depends(get_repository),
) -> ApiResponse[ModeratedPostOut]:
    _require_admin(principal)
    kind = _resolve_kind(payload.type if payload else None)
    return await _moderate_content(
        repository=repository,
        kind=kind,
        content_id=post_id,
        decision=ModerationDecision.approve(),
        actor_id=principal.user_id,
    )


@router.patch("/posts/{post_id}/reject", response_model=ApiResponse[ModeratedPostOut])
async def reject_post(
    post_id: int,
    payload: RejectPostRequest | None = None,
    principal=Depends(get_current_principal),
    repository=Depends(get_repository),
) -> ApiResponse[ModeratedPostOut]:
    _require_admin(principal)
    kind = _resolve_kind(payload.type if payload else None)
    return await _moderate_content(
        repository=repository,
        kind=kind,
        content_id=post_id,
        decision=ModerationDecision.reject(payload.reason if payload else None),
        actor_id=principal.user_id,
    )


@router.patch("/posts/{post_id}/toggle-status", response_model=ApiResponse[ModeratedPostOut])
async def toggle_post_status(
    post_id: int,
    payload: PostTypeRequest | None = None,
    principal=Depends(get_current_principal),
    repository=Depends(get_repository),
) -> ApiResponse[ModeratedPostOut]:
    _require_admin(principal)
    kind = _resolve_kind(payload.type if payload else None)
    return await _toggle_content(
        repository=repository,
        kind=kind,
        content_id=post_id,
        actor_id=principal.user_id,
    )


@router.get("/categories", response_model=ApiResponse[list[AdminCategoryOut]])
async def list_categories(
    principal=Depends(get_current_principal),
    repository=Depends(get_repository),
) -> ApiResponse[list[AdminCategoryOut]]:
    _require_admin(principal)

    try:
        rows = await repository.list_admin_categories()
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return ApiResponse[list[AdminCategoryOut]](
        message="Categories retrieved successfully.",
        data=[AdminCategoryOut(**row) for row in rows],
    )


async def _moderate_content(
    *,
    repository,
    kind: ContentKind,
    content_id: int,
    decision: ModerationDecision,
    actor_id: int,
) -> ApiResponse[ModeratedPostOut]:
    try:
        row = await repository.set_content_status(kind=kind, content_id=content_id, decision=decision)
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    logger.info(
        "content moderated kind=%s id=%s status=%s actor_id=%s",
        kind.value,
        content_id,
        decision.status,
        actor_id,
    )
    return ApiResponse[ModeratedPostOut](
        message=f"{kind.label} {decision.status} successfully.",
        data=ModeratedPostOut(**row),
    )


async def _toggle_content(
    *,
    repository,
    kind: ContentKind,
    content_id: int,
    actor_id: int,
) -> ApiResponse[ModeratedPostOut]:
    try:
        row = await repository.toggle_content_active(kind=kind, content_id=content_id)
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryForbiddenError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    state = "activated" if row["is_active"] else "deactivated"
    logger.info("content %s kind=%s id=%s actor_id=%s", state, kind.value, content_id, actor_id)
    return ApiResponse[ModeratedPostOut](
        message=f"{kind.label} {state} successfully.",
        data=ModeratedPostOut(**row),
    )
