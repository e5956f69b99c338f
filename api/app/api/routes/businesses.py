import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.config import Settings, get_settings
from app.core.security import get_current_principal
from app.schemas.businesses import (
    BusinessDetailOut,
    BusinessListItemOut,
    BusinessSortBy,
    CreateBusinessRequest,
    SortDir,
    UpdateBusinessRequest,
)
from app.schemas.common import ApiResponse, PaginatedResponse, build_pagination
from app.schemas.jobs import CreateJobRequest, JobOut
from app.schemas.offers import CreateOfferRequest, OfferOut
from app.services.events import BusinessCreated, handle_business_created
from app.services.repository import (
    RepositoryConflictError,
    RepositoryForbiddenError,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
    get_repository,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=PaginatedResponse[list[BusinessListItemOut]])
async def list_businesses(
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    category_id: int | None = Query(default=None, alias="categoryId", gt=0),
    subcategory_id: int | None = Query(default=None, alias="subcategoryId", gt=0),
    city: str | None = Query(default=None, max_length=100),
    state: str | None = Query(default=None, max_length=100),
    pincode: str | None = Query(default=None, max_length=10),
    is_verified: bool | None = Query(default=None, alias="isVerified"),
    search: str | None = Query(default=None, max_length=200),
    sort_by: BusinessSortBy = Query(default="createdAt", alias="sortBy"),
    sort_order: SortDir = Query(default="desc", alias="sortOrder"),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
) -> PaginatedResponse[list[BusinessListItemOut]]:
    page_size = min(limit or settings.default_page_size, settings.max_page_size)

    try:
        rows, total = await repository.list_businesses(
            category_id=category_id,
            subcategory_id=subcategory_id,
            city=city,
            state=state,
            pincode=pincode,
            is_verified=is_verified,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=page_size,
            offset=(page - 1) * page_size,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return PaginatedResponse[list[BusinessListItemOut]](
        message="Businesses retrieved successfully.",
        data=[BusinessListItemOut(**row) for row in rows],
        pagination=build_pagination(page=page, limit=page_size, total=total),
    )


@router.get("/{business_id}", response_model=ApiResponse[BusinessDetailOut])
async def get_business(
    business_id: str,
    repository=Depends(get_repository),
) -> ApiResponse[BusinessDetailOut]:
    try:
        row = await repository.get_business(business_id)
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return ApiResponse[BusinessDetailOut](
        message="Business retrieved successfully.",
        data=BusinessDetailOut(**row),
    )


@router.post("", response_model=ApiResponse[BusinessDetailOut], status_code=status.HTTP_201_CREATED)
async def create_business(
    payload: CreateBusinessRequest,
    principal=Depends(get_current_principal),
    repository=Depends(get_repository),
) -> ApiResponse[BusinessDetailOut]:
    try:
        row = await repository.create_business(
            owner_id=principal.user_id,
            payload=payload.model_dump(),
        )
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    # The business is already stored; a failed promotion must not turn the create into an error.
    try:
        await handle_business_created(
            repository,
            BusinessCreated(business_id=row["id"], owner_id=principal.user_id, owner_role=principal.role),
        )
    except (RepositoryNotFoundError, RepositoryUnavailableError):
        logger.warning(
            "business owner promotion failed business_id=%s owner_id=%s",
            row["id"],
            principal.user_id,
            exc_info=True,
        )

    logger.info("business created business_id=%s owner_id=%s", row["id"], principal.user_id)
    return ApiResponse[BusinessDetailOut](
        message="Business created successfully. It will be visible after admin approval.",
        data=BusinessDetailOut(**row),
    )


@router.put("/{business_id}", response_model=ApiResponse[BusinessDetailOut])
async def update_business(
    business_id: str,
    payload: UpdateBusinessRequest,
    principal=Depends(get_current_principal),
    repository=Depends(get_repository),
) -> ApiResponse[BusinessDetailOut]:
    try:
        row = await repository.update_business(
            identifier=business_id,
            actor_user_id=principal.user_id,
            actor_role=principal.role,
            changes=payload.model_dump(exclude_unset=True),
        )
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryForbiddenError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return ApiResponse[BusinessDetailOut](message="Business updated successfully.", data=BusinessDetailOut(**row))


@router.post("/{business_id}/jobs", response_model=ApiResponse[JobOut], status_code=status.HTTP_201_CREATED)
async def create_job(
    business_id: int,
    payload: CreateJobRequest,
    principal=Depends(get_current_principal),
    repository=Depends(get_repository),
) -> ApiResponse[JobOut]:
    try:
        row = await repository.create_job(
            business_id=business_id,
            actor_user_id=principal.user_id,
            actor_role=principal.role,
            payload=payload.model_dump(),
        )
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryForbiddenError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return ApiResponse[JobOut](
        message="Job created successfully. It will be visible after admin approval.",
        data=JobOut(**row),
    )


@router.post("/{business_id}/offers", response_model=ApiResponse[OfferOut], status_code=status.HTTP_201_CREATED)
async def create_offer(
    business_id: int,
    payload: CreateOfferRequest,
    principal=Depends(get_current_principal),
    repository=Depends(get_repository),
) -> ApiResponse[OfferOut]:
    try:
        row = await repository.create_offer(
            business_id=business_id,
            actor_user_id=principal.user_id,
            actor_role=principal.role,
            payload=payload.model_dump(),
        )
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryForbiddenError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return ApiResponse[OfferOut](
        message="Offer created successfully. It will be visible after admin approval.",
        data=OfferOut(**row),
    )
