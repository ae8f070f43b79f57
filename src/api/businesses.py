"""Public listing reads and administrative listing writes."""

import json
import logging
from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import Any, cast

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_audience, get_optional_user, require_admin
from src.api.responses import paginated_response, success_response
from src.cache import (
    CAPITAL_RANGE_COUNTS,
    CATEGORY_COUNTS,
    build_cache_key,
    cache_delete,
    cache_get,
    cache_set,
    enumeration_cache_keys,
)
from src.config import Settings, get_settings
from src.db.session import get_db_session
from src.errors import NotFoundError
from src.listings.projection import Audience, dump_projection, project_listing
from src.listings.query import ListingQuery
from src.listings.schemas import ListingCreate, ListingUpdate
from src.models.user import User
from src.services.listing_service import ListingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/businesses", tags=["businesses"])


def _not_found() -> NotFoundError:
    return NotFoundError("Business not found", code="BUSINESS_NOT_FOUND")


async def _cached_counts(
    name: str,
    loader: Callable[[], Awaitable[list[dict[str, object]]]],
    ttl_seconds: int,
) -> list[dict[str, object]]:
    cache_key = build_cache_key(name)
    cached = await cache_get(cache_key)
    if cached:
        return cast(list[dict[str, object]], json.loads(cached))

    counts = await loader()
    await cache_set(cache_key, counts, ttl_seconds)
    return counts


@router.get("")
async def list_businesses(
    search: str | None = Query(None, max_length=200),
    category: str | None = None,
    location: str | None = Query(None, max_length=200),
    paid_up_capital_range: str | None = Query(None, alias="paidUpCapitalRange"),
    min_capital: Decimal | None = Query(None, alias="minCapital", ge=0),
    max_capital: Decimal | None = Query(None, alias="maxCapital", ge=0),
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_order: str | None = Query(None, alias="sortOrder"),
    page: int = 1,
    limit: int | None = None,
    audience: Audience = Depends(get_audience),
    user: User | None = Depends(get_optional_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    """Search active listings with filters, sorting and pagination."""

    query = ListingQuery(
        search=search,
        category=category,
        location=location,
        paid_up_capital_range=paid_up_capital_range,
        min_capital=min_capital,
        max_capital=max_capital,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    result = await ListingService(session).search(
        query, audience=audience, user_id=user.id if user else None
    )
    sort_key, sort_direction = result.sort
    return paginated_response(
        [dump_projection(item) for item in result.items],
        result.pagination,
        "Businesses retrieved successfully",
        sort={"sortBy": sort_key, "sortOrder": sort_direction},
    )


@router.get("/categories")
async def list_categories(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    service = ListingService(session, settings)
    categories = await _cached_counts(
        CATEGORY_COUNTS, service.list_categories, settings.listing_cache_ttl_seconds
    )
    return success_response(categories, "Categories retrieved successfully")


@router.get("/capital-ranges")
async def list_capital_ranges(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    service = ListingService(session, settings)
    ranges = await _cached_counts(
        CAPITAL_RANGE_COUNTS,
        service.list_capital_ranges,
        settings.listing_cache_ttl_seconds,
    )
    return success_response(ranges, "Capital ranges retrieved successfully")


@router.get("/{id_or_slug}")
async def get_business(
    id_or_slug: str,
    audience: Audience = Depends(get_audience),
    user: User | None = Depends(get_optional_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    view = await ListingService(session).get_detail(
        id_or_slug, audience=audience, user_id=user.id if user else None
    )
    if view is None:
        raise _not_found()
    return success_response(dump_projection(view), "Business retrieved successfully")


@router.get("/{id_or_slug}/similar")
async def get_similar_businesses(
    id_or_slug: str,
    limit: int | None = None,
    audience: Audience = Depends(get_audience),
    user: User | None = Depends(get_optional_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    similar = await ListingService(session).get_similar(
        id_or_slug,
        audience=audience,
        user_id=user.id if user else None,
        limit=limit,
    )
    if similar is None:
        raise _not_found()
    return success_response(
        [dump_projection(item) for item in similar],
        "Similar businesses retrieved successfully",
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_business(
    payload: ListingCreate,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    listing = await ListingService(session).create_listing(payload)
    await cache_delete(*enumeration_cache_keys())
    logger.info("Admin %s created listing %s", admin.id, listing.id)
    view = project_listing(listing, Audience.INTERACTIVE)
    return success_response(dump_projection(view), "Business created successfully")


@router.patch("/{listing_id}")
async def update_business(
    listing_id: str,
    payload: ListingUpdate,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    listing = await ListingService(session).update_listing(listing_id, payload)
    if listing is None:
        raise _not_found()
    await cache_delete(*enumeration_cache_keys())
    logger.info("Admin %s updated listing %s", admin.id, listing_id)
    view = project_listing(listing, Audience.INTERACTIVE)
    return success_response(dump_projection(view), "Business updated successfully")


@router.delete("/{listing_id}")
async def delete_business(
    listing_id: str,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    deactivated = await ListingService(session).deactivate_listing(listing_id)
    if not deactivated:
        raise _not_found()
    await cache_delete(*enumeration_cache_keys())
    logger.info("Admin %s deactivated listing %s", admin.id, listing_id)
    return success_response(None, "Business deleted successfully")
