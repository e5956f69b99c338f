from fastapi import APIRouter, Depends, HTTPException, status

from app.core.security import get_current_principal
from app.schemas.common import ApiResponse
from app.schemas.users import UpdateProfileRequest, UserProfileOut
from app.services.repository import (
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
    get_repository,
)

router = APIRouter()


@router.get("/me", response_model=ApiResponse[UserProfileOut])
async def get_profile(
    principal=Depends(get_current_principal),
    repository=Depends(get_repository),
) -> ApiResponse[UserProfileOut]:
    try:
        row = await repository.get_user_profile(principal.user_id)
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return ApiResponse[UserProfileOut](message="Profile retrieved successfully.", data=UserProfileOut(**row))


@router.put("/me", response_model=ApiResponse[UserProfileOut])
async def update_profile(
    payload: UpdateProfileRequest,
    principal=Depends(get_current_principal),
    repository=Depends(get_repository),
) -> ApiResponse[UserProfileOut]:
    try:
        row = await repository.update_user_profile(
            user_id=principal.user_id,
            changes=payload.model_dump(exclude_unset=True),
        )
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return ApiResponse[UserProfileOut](message="Profile updated successfully.", data=UserProfileOut(**row))
