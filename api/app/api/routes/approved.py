from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.config import Settings, get_settings
from app.schemas.approved import ApprovedBusinessOut, ApprovedJobOut, ApprovedOfferOut
from app.schemas.common import PaginatedResponse, build_pagination
from app.services.repository import RepositoryUnavailableError, get_repository

router = APIRouter()


@router.get("/businesses", response_model=PaginatedResponse[list[ApprovedBusinessOut]])
async def list_approved_businesses(
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    search: str | None = Query(default=None, max_length=200),
    category_id: int | None = Query(default=None, alias="categoryId", gt=0),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
) -> PaginatedResponse[list[ApprovedBusinessOut]]:
    page_size = min(limit or settings.default_page_size, settings.max_page_size)

    try:
        rows, total = await repository.list_approved_businesses(
            search=search,
            category_id=category_id,
            limit=page_size,
            offset=(page - 1) * page_size,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return PaginatedResponse[list[ApprovedBusinessOut]](
        message="Approved businesses retrieved.",
        data=[ApprovedBusinessOut(**row) for row in rows],
        pagination=build_pagination(page=page, limit=page_size, total=total),
    )


@router.get("/jobs", response_model=PaginatedResponse[list[ApprovedJobOut]])
async def list_approved_jobs(
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
) -> PaginatedResponse[list[ApprovedJobOut]]:
    page_size = min(limit or settings.default_page_size, settings.max_page_size)

    try:
        rows, total = await repository.list_approved_jobs(limit=page_size, offset=(page - 1) * page_size)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return PaginatedResponse[list[ApprovedJobOut]](
        message="Approved jobs retrieved.",
        data=[ApprovedJobOut(**row) for row in rows],
        pagination=build_pagination(page=page, limit=page_size, total=total),
    )


@router.get("/offers", response_model=PaginatedResponse[list[ApprovedOfferOut]])
async def list_approved_offers(
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
) -> PaginatedResponse[list[ApprovedOfferOut]]:
    page_size = min(limit or settings.default_page_size, settings.max_page_size)

    try:
        rows, total = await repository.list_approved_offers(limit=page_size, offset=(page - 1) * page_size)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return PaginatedResponse[list[ApprovedOfferOut]](
        message="Approved offers retrieved.",
        data=[ApprovedOfferOut(**row) for row in rows],
        pagination=build_pagination(page=page, limit=page_size, total=total),
    )
