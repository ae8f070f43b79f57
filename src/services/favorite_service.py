"""Business logic for user favorite management."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.db.repositories import (
    delete_favorite,
    fetch_favorite_listings,
    fetch_listing_by_id,
    insert_favorite,
)
from src.listings.projection import Audience, ProjectedListing, project_listings

logger = logging.getLogger(__name__)


class FavoriteService:
    """Service layer for favorite toggles and favorite listings."""

    _session: AsyncSession

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add_favorite(self, user_id: str, listing_id: str) -> dict[str, object]:
        """Add an active listing to the user's favorites."""

        listing = await fetch_listing_by_id(self._session, listing_id, is_active=True)
        if listing is None:
            return {
                "user_id": user_id,
                "listing_id": listing_id,
                "status": "not_found",
                "message": "Business not found",
            }

        inserted = await insert_favorite(self._session, user_id, listing_id)
        if not inserted:
            return {
                "user_id": user_id,
                "listing_id": listing_id,
                "status": "already_exists",
                "message": "Business already in favorites",
            }

        logger.info("User %s favorited listing %s", user_id, listing_id)
        return {
            "user_id": user_id,
            "listing_id": listing_id,
            "status": "added",
            "message": "Business added to favorites",
        }

    async def remove_favorite(
        self, user_id: str, listing_id: str
    ) -> dict[str, object]:
        """Remove a listing from the user's favorites."""

        deleted = await delete_favorite(self._session, user_id, listing_id)
        if not deleted:
            return {
                "user_id": user_id,
                "listing_id": listing_id,
                "status": "not_found",
                "message": "Business not in favorites",
            }

        logger.info("User %s unfavorited listing %s", user_id, listing_id)
        return {
            "user_id": user_id,
            "listing_id": listing_id,
            "status": "removed",
            "message": "Business removed from favorites",
        }

    async def list_favorites(
        self, user_id: str, limit: int = 200
    ) -> list[ProjectedListing]:
        """List the user's active favorite listings."""

        listings = await fetch_favorite_listings(self._session, user_id, limit=limit)
        favorite_ids = {listing.id for listing in listings}
        return project_listings(listings, Audience.INTERACTIVE, favorite_ids)
