"""Business logic for listing search, detail, similarity and curation."""

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings, get_settings
from src.db.repositories import (
    count_by_capital_range,
    count_by_category,
    count_listings,
    fetch_favorite_listing_ids,
    fetch_listing_by_id,
    fetch_listing_by_slug,
    fetch_listing_page,
    fetch_similar_listings,
    increment_view_count,
    insert_listing,
    slug_exists,
    update_listing,
)
from src.errors import SlugCollisionError
from src.listings.classification import CapitalRange, Category
from src.listings.derivation import derive_listing_fields, with_slug_suffix
from src.listings.ingestion import ImportResult, parse_records
from src.listings.projection import (
    Audience,
    ListingRecord,
    ProjectedListing,
    project_listing,
    project_listings,
)
from src.listings.query import ListingQuery, Pagination, build_query_plan
from src.listings.schemas import ListingCreate, ListingUpdate
from src.models.listing import Listing

logger = logging.getLogger(__name__)

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")
MAX_SLUG_ATTEMPTS = 5

_DERIVATION_INPUTS = (
    "name",
    "slug",
    "category",
    "description",
    "location",
    "paid_up_capital",
    "meta_description",
)


def is_object_id(value: str) -> bool:
    return bool(OBJECT_ID_PATTERN.match(value))


@dataclass(slots=True)
class ListingPage:
    """One projected result page plus its pagination metadata."""

    items: list[ProjectedListing]
    pagination: Pagination
    sort: tuple[str, str]


class ListingService:
    """Service layer for listing reads and administrative writes."""

    def __init__(
        self, session: AsyncSession, settings: Settings | None = None
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()

    async def _favorite_ids(
        self, user_id: str | None, listings: list[Listing]
    ) -> set[str]:
        if user_id is None or not listings:
            return set()
        return await fetch_favorite_listing_ids(
            self._session, user_id, [listing.id for listing in listings]
        )

    async def search(
        self,
        query: ListingQuery,
        *,
        audience: Audience,
        user_id: str | None = None,
    ) -> ListingPage:
        """Run a filtered, sorted, paginated listing search."""

        plan = build_query_plan(
            query,
            default_limit=self._settings.listing_page_size_default,
            max_limit=self._settings.listing_page_size_max,
        )
        rows = await fetch_listing_page(self._session, plan)
        total = await count_listings(self._session, plan)

        favorite_ids: set[str] = set()
        if audience is Audience.INTERACTIVE:
            favorite_ids = await self._favorite_ids(user_id, rows)

        return ListingPage(
            items=project_listings(rows, audience, favorite_ids),
            pagination=Pagination(
                current_page=plan.page, items_per_page=plan.limit, total_items=total
            ),
            sort=plan.sort,
        )

    async def resolve(
        self, id_or_slug: str, *, is_active: bool | None = True
    ) -> Listing | None:
        """Find a listing by 24-hex identifier, otherwise by slug."""

        key = id_or_slug.strip()
        if not key:
            return None
        if is_object_id(key):
            return await fetch_listing_by_id(
                self._session, key.lower(), is_active=is_active
            )
        return await fetch_listing_by_slug(
            self._session, key.lower(), is_active=is_active
        )

    async def get_detail(
        self,
        id_or_slug: str,
        *,
        audience: Audience,
        user_id: str | None = None,
    ) -> ProjectedListing | None:
        """Return one projected listing; interactive reads count as a view."""

        listing = await self.resolve(id_or_slug)
        if listing is None:
            return None

        record = ListingRecord.from_listing(listing)
        if audience is Audience.CRAWLER:
            return project_listing(record, audience)

        view_count = await increment_view_count(self._session, record.id)
        if view_count is not None:
            record = record.model_copy(update={"view_count": view_count})
        favorite_ids = await self._favorite_ids(user_id, [listing])
        return project_listing(record, audience, favorite_ids)

    def _similar_limit(self, limit: int | None) -> int:
        if limit is None:
            limit = self._settings.similar_limit_default
        return max(1, min(limit, self._settings.similar_limit_max))

    async def similar_to(
        self, listing: Listing, limit: int | None = None
    ) -> list[Listing]:
        """Return listings related to ``listing``.

        Same category and capital band first, then same category only to fill
        the shortfall. Undisclosed capital skips the band constraint. The
        second query depends on how many rows the first returned.
        """

        limit = self._similar_limit(limit)
        tier = listing.paid_up_capital_range
        tier_filter = None if tier == CapitalRange.UNDISCLOSED.value else tier

        primary = await fetch_similar_listings(
            self._session,
            category=listing.category,
            capital_range=tier_filter,
            exclude_ids=[listing.id],
            limit=limit,
        )
        results: list[Listing] = []
        seen: set[str] = {listing.id}
        for candidate in primary:
            if candidate.id in seen:
                continue
            seen.add(candidate.id)
            results.append(candidate)
            if len(results) == limit:
                break

        shortfall = limit - len(results)
        if shortfall > 0:
            fallback = await fetch_similar_listings(
                self._session,
                category=listing.category,
                exclude_ids=list(seen),
                limit=shortfall,
            )
            for candidate in fallback:
                if candidate.id in seen:
                    continue
                seen.add(candidate.id)
                results.append(candidate)
                if len(results) == limit:
                    break
            logger.debug(
                "similar listings for %s: %d tier matches, %d category fallbacks",
                listing.id,
                len(primary),
                len(fallback),
            )

        return results

    async def get_similar(
        self,
        id_or_slug: str,
        *,
        audience: Audience,
        user_id: str | None = None,
        limit: int | None = None,
    ) -> list[ProjectedListing] | None:
        listing = await self.resolve(id_or_slug)
        if listing is None:
            return None

        similar = await self.similar_to(listing, limit)
        favorite_ids: set[str] = set()
        if audience is Audience.INTERACTIVE:
            favorite_ids = await self._favorite_ids(user_id, similar)
        return project_listings(similar, audience, favorite_ids)

    async def list_categories(self) -> list[dict[str, object]]:
        """Every category with its live active-listing count."""

        counts = await count_by_category(self._session)
        return [
            {"name": category.value, "count": counts.get(category.value, 0)}
            for category in Category
        ]

    async def list_capital_ranges(self) -> list[dict[str, object]]:
        """Every capital band, lowest first, with its live count."""

        counts = await count_by_capital_range(self._session)
        return [
            {"name": band.value, "count": counts.get(band.value, 0)}
            for band in CapitalRange
        ]

    async def _unique_slug(
        self, base: str | None, *, exclude_id: str | None = None
    ) -> str | None:
        if not base:
            return None
        candidate = base
        for _ in range(MAX_SLUG_ATTEMPTS):
            if not await slug_exists(self._session, candidate, exclude_id=exclude_id):
                return candidate
            candidate = with_slug_suffix(base)
        raise SlugCollisionError(f"Could not allocate a unique slug for '{base}'")

    async def create_listing(self, payload: ListingCreate) -> Listing:
        values = derive_listing_fields(payload.to_values())
        values["slug"] = await self._unique_slug(values.get("slug"))
        listing = await insert_listing(self._session, values)
        logger.info("Created listing %s (%s)", listing.id, listing.slug)
        return listing

    async def update_listing(
        self, listing_id: str, payload: ListingUpdate
    ) -> Listing | None:
        current = await fetch_listing_by_id(self._session, listing_id, is_active=None)
        if current is None:
            return None

        snapshot = {field: getattr(current, field) for field in _DERIVATION_INPUTS}
        values = derive_listing_fields(payload.to_values(), current=snapshot)
        if "slug" in values:
            values["slug"] = await self._unique_slug(
                values["slug"], exclude_id=listing_id
            )
        if not values:
            return current

        listing = await update_listing(self._session, listing_id, values)
        logger.info("Updated listing %s fields=%s", listing_id, sorted(values))
        return listing

    async def deactivate_listing(self, listing_id: str) -> bool:
        """Soft delete: hide the listing from every public read path."""

        listing = await update_listing(self._session, listing_id, {"is_active": False})
        if listing is None:
            return False
        logger.info("Deactivated listing %s", listing_id)
        return True

    async def import_records(
        self, records: Iterable[Mapping[str, Any]]
    ) -> ImportResult:
        """Create listings from raw registry rows, one row at a time.

        Rows that fail validation or violate a store constraint are recorded
        in ``ImportResult.errors`` and skipped. Connectivity failures still
        propagate.
        """

        payloads, errors = parse_records(records)
        for message in errors:
            logger.warning("Import %s", message)
        result = ImportResult(errors=list(errors))
        for row_number, payload in payloads:
            try:
                listing = await self.create_listing(payload)
            except (IntegrityError, DataError, SlugCollisionError) as exc:
                await self._session.rollback()
                logger.warning("Import row %d rejected: %s", row_number, exc)
                result.errors.append(f"row {row_number}: {type(exc).__name__}")
                continue
            result.listing_ids.append(listing.id)

        result.count = len(result.listing_ids)
        logger.info(
            "Imported %d listings, %d rows rejected", result.count, len(result.errors)
        )
        return result
