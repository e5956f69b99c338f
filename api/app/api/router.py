from fastapi import APIRouter

from app.api.routes import admin, approved, auth, businesses, categories, health, users

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(businesses.router, prefix="/businesses", tags=["businesses"])
api_router.include_router(approved.router, prefix="/approved", tags=["public"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
