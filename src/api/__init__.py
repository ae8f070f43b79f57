"""HTTP API package."""

from fastapi import APIRouter

from src.api.auth import router as auth_router
from src.api.businesses import router as businesses_router
from src.api.favorites import router as favorites_router
from src.api.users import router as users_router

api_router = APIRouter(prefix="/api")
api_router.include_router(auth_router)
api_router.include_router(businesses_router)
api_router.include_router(favorites_router)
api_router.include_router(users_router)

__all__ = ["api_router"]
