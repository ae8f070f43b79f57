"""Database session and repository utilities."""

from src.db.session import get_db_session, get_engine, get_sessionmaker, session_context
from src.db.repositories import (
    count_listings,
    delete_favorite,
    fetch_favorite_listing_ids,
    fetch_listing_by_id,
    fetch_listing_by_slug,
    fetch_listing_page,
    fetch_similar_listings,
    insert_favorite,
    insert_listing,
    update_listing,
)

__all__ = [
    "get_db_session",
    "get_engine",
    "get_sessionmaker",
    "session_context",
    "count_listings",
    "delete_favorite",
    "fetch_favorite_listing_ids",
    "fetch_listing_by_id",
    "fetch_listing_by_slug",
    "fetch_listing_page",
    "fetch_similar_listings",
    "insert_favorite",
    "insert_listing",
    "update_listing",
]
