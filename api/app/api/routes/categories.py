from fastapi import APIRouter, Depends, HTTPException, status

from app.core.auth import UserRole
from app.core.security import get_current_principal
from app.schemas.categories import CategoryOut, CreateCategoryRequest
from app.schemas.common import ApiResponse
from app.services.repository import (
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
    get_repository,
)

router = APIRouter()


@router.get("", response_model=ApiResponse[list[CategoryOut]])
async def list_categories(repository=Depends(get_repository)) -> ApiResponse[list[CategoryOut]]:
    try:
        rows = await repository.list_categories()
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return ApiResponse[list[CategoryOut]](
        message="Categories retrieved successfully.",
        data=[CategoryOut(**row) for row in rows],
    )


@router.post("", response_model=ApiResponse[CategoryOut], status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CreateCategoryRequest,
    principal=Depends(get_current_principal),
    repository=Depends(get_repository),
) -> ApiResponse[CategoryOut]:
    try:
        principal.require_roles({UserRole.ADMIN.value})
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc

    try:
        row = await repository.create_category(
            name=payload.name,
            description=payload.description,
            icon=payload.icon,
            sort_order=payload.sort_order,
        )
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return ApiResponse[CategoryOut](message="Category created successfully.", data=CategoryOut(**row))


@router.delete("/{category_id}", response_model=ApiResponse[None])
async def delete_category(
    category_id: int,
    principal=Depends(get_current_principal),
    repository=Depends(get_repository),
) -> ApiResponse[None]:
    try:
        principal.require_roles({UserRole.ADMIN.value})
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc

    try:
        await repository.delete_category(category_id)
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return ApiResponse[None](message="Category deleted successfully.")
