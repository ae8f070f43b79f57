"""Service layer package."""

from src.services.auth_service import AuthService
from src.services.favorite_service import FavoriteService
from src.services.listing_service import ListingService
from src.services.user_service import UserService

__all__ = ["AuthService", "FavoriteService", "ListingService", "UserService"]
