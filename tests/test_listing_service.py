"""Tests for listing search, detail, similarity and curation."""

from collections.abc import Callable, Iterable
from typing import Any
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError

import src.services.listing_service as service_module
from src.errors import SlugCollisionError
from src.listings.projection import Audience, CrawlerListingView, ListingView
from src.listings.query import ListingQuery
from src.listings.schemas import ListingCreate, ListingUpdate
from src.models.listing import Listing
from src.services.listing_service import ListingService, is_object_id


def _install_similar_store(
    monkeypatch: pytest.MonkeyPatch, rows: list[Listing]
) -> list[dict[str, Any]]:
    calls: list[dict[str, Any]] = []

    async def fake_fetch_similar_listings(
        _session: object,
        *,
        category: str,
        exclude_ids: Iterable[str],
        limit: int,
        capital_range: str | None = None,
    ) -> list[Listing]:
        excluded = set(exclude_ids)
        calls.append(
            {"capital_range": capital_range, "exclude_ids": excluded, "limit": limit}
        )
        matches = [
            row
            for row in rows
            if row.is_active
            and row.category == category
            and row.id not in excluded
            and (capital_range is None or row.paid_up_capital_range == capital_range)
        ]
        matches.sort(key=lambda row: (-row.view_count, -row.favorite_count, row.id))
        return matches[:limit]

    monkeypatch.setattr(
        service_module, "fetch_similar_listings", fake_fetch_similar_listings
    )
    return calls


@pytest.mark.anyio
async def test_similar_prefers_same_tier_then_fills_from_category(
    monkeypatch: pytest.MonkeyPatch, make_listing: Callable[..., Listing]
) -> None:
    base = make_listing(id="a" * 24, paid_up_capital=2000000)
    tier_matches = [
        make_listing(id=f"{i:024x}", paid_up_capital=1500000, view_count=10 - i)
        for i in range(1, 4)
    ]
    others = [
        make_listing(id=f"{i:024x}", paid_up_capital=20000, view_count=100 + i)
        for i in range(10, 15)
    ]
    unrelated = make_listing(category="Finance", paid_up_capital=1500000)
    inactive = make_listing(paid_up_capital=1500000, view_count=999, is_active=False)
    calls = _install_similar_store(
        monkeypatch, [base, *others, *tier_matches, unrelated, inactive]
    )

    similar = await ListingService(AsyncMock()).similar_to(base, limit=4)

    assert [row.id for row in similar[:3]] == [row.id for row in tier_matches]
    assert similar[3].id == others[-1].id
    assert base.id not in {row.id for row in similar}
    assert len({row.id for row in similar}) == len(similar) == 4
    assert calls[0]["capital_range"] == "$1M - $5M"
    assert calls[1]["capital_range"] is None
    assert calls[1]["limit"] == 1
    assert {row.id for row in tier_matches} <= calls[1]["exclude_ids"]


@pytest.mark.anyio
async def test_similar_skips_fallback_when_tier_fills_limit(
    monkeypatch: pytest.MonkeyPatch, make_listing: Callable[..., Listing]
) -> None:
    base = make_listing(paid_up_capital=2000000)
    rows = [make_listing(paid_up_capital=3000000) for _ in range(5)]
    calls = _install_similar_store(monkeypatch, [base, *rows])

    similar = await ListingService(AsyncMock()).similar_to(base, limit=2)

    assert len(similar) == 2
    assert len(calls) == 1


@pytest.mark.anyio
async def test_similar_for_undisclosed_capital_uses_category_only(
    monkeypatch: pytest.MonkeyPatch, make_listing: Callable[..., Listing]
) -> None:
    base = make_listing()
    rows = [make_listing(paid_up_capital=500), make_listing(paid_up_capital=None)]
    calls = _install_similar_store(monkeypatch, [base, *rows])

    similar = await ListingService(AsyncMock()).similar_to(base)

    assert calls[0]["capital_range"] is None
    assert {row.id for row in similar} == {row.id for row in rows}


@pytest.mark.anyio
async def test_similar_limit_is_clamped(
    monkeypatch: pytest.MonkeyPatch, make_listing: Callable[..., Listing]
) -> None:
    base = make_listing()
    calls = _install_similar_store(monkeypatch, [base])

    await ListingService(AsyncMock()).similar_to(base, limit=5000)

    assert calls[0]["limit"] == 100


def test_is_object_id() -> None:
    assert is_object_id("65f1c2a9b3e4d5f6a7b8c9d0")
    assert not is_object_id("cafe-delight")
    assert not is_object_id("65f1c2a9b3e4d5f6a7b8c9d")


@pytest.mark.anyio
async def test_resolve_uses_id_for_object_ids_and_slug_otherwise(
    monkeypatch: pytest.MonkeyPatch, make_listing: Callable[..., Listing]
) -> None:
    listing = make_listing(id="65f1c2a9b3e4d5f6a7b8c9d0", slug="café-delight")
    lookups: list[tuple[str, str]] = []

    async def fake_by_id(_session: object, key: str, **_: object) -> Listing | None:
        lookups.append(("id", key))
        return listing if key == listing.id else None

    async def fake_by_slug(_session: object, key: str, **_: object) -> Listing | None:
        lookups.append(("slug", key))
        return listing if key == listing.slug else None

    monkeypatch.setattr(service_module, "fetch_listing_by_id", fake_by_id)
    monkeypatch.setattr(service_module, "fetch_listing_by_slug", fake_by_slug)
    service = ListingService(AsyncMock())

    assert await service.resolve("65F1C2A9B3E4D5F6A7B8C9D0") is listing
    assert await service.resolve("Café-Delight") is listing
    assert await service.resolve("   ") is None
    assert lookups == [("id", listing.id), ("slug", "café-delight")]


@pytest.mark.anyio
async def test_detail_counts_interactive_views_only(
    monkeypatch: pytest.MonkeyPatch, make_listing: Callable[..., Listing]
) -> None:
    listing = make_listing(view_count=7)
    increments: list[str] = []

    async def fake_by_slug(_session: object, _key: str, **_: object) -> Listing:
        return listing

    async def fake_increment(_session: object, listing_id: str) -> int:
        increments.append(listing_id)
        return 8

    async def fake_favorite_ids(
        _session: object, _user_id: str, _ids: list[str]
    ) -> set[str]:
        return {listing.id}

    monkeypatch.setattr(service_module, "fetch_listing_by_slug", fake_by_slug)
    monkeypatch.setattr(service_module, "increment_view_count", fake_increment)
    monkeypatch.setattr(
        service_module, "fetch_favorite_listing_ids", fake_favorite_ids
    )
    service = ListingService(AsyncMock())

    crawler_view = await service.get_detail("sample", audience=Audience.CRAWLER)
    interactive_view = await service.get_detail(
        "sample", audience=Audience.INTERACTIVE, user_id="u" * 24
    )

    assert isinstance(crawler_view, CrawlerListingView)
    assert crawler_view.view_count == 7
    assert isinstance(interactive_view, ListingView)
    assert interactive_view.view_count == 8
    assert interactive_view.is_favorite is True
    assert increments == [listing.id]
    assert listing.view_count == 7


@pytest.mark.anyio
async def test_detail_missing_listing_returns_none(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fake_by_slug(_session: object, _key: str, **_: object) -> None:
        return None

    increment = AsyncMock()
    monkeypatch.setattr(service_module, "fetch_listing_by_slug", fake_by_slug)
    monkeypatch.setattr(service_module, "increment_view_count", increment)

    view = await ListingService(AsyncMock()).get_detail(
        "missing", audience=Audience.INTERACTIVE
    )

    assert view is None
    increment.assert_not_awaited()


@pytest.mark.anyio
async def test_search_marks_favorites_for_interactive_callers_only(
    monkeypatch: pytest.MonkeyPatch, make_listing: Callable[..., Listing]
) -> None:
    rows = [make_listing(name="Alpha"), make_listing(name="Beta")]
    favorite_lookup = AsyncMock(return_value={rows[1].id})

    async def fake_page(_session: object, plan: Any) -> list[Listing]:
        assert plan.skip == 20
        return rows

    async def fake_count(_session: object, _plan: Any) -> int:
        return 45

    monkeypatch.setattr(service_module, "fetch_listing_page", fake_page)
    monkeypatch.setattr(service_module, "count_listings", fake_count)
    monkeypatch.setattr(service_module, "fetch_favorite_listing_ids", favorite_lookup)
    service = ListingService(AsyncMock())
    query = ListingQuery(page=2, limit=20)

    interactive = await service.search(
        query, audience=Audience.INTERACTIVE, user_id="u" * 24
    )
    crawler = await service.search(query, audience=Audience.CRAWLER, user_id="u" * 24)

    assert [getattr(item, "is_favorite") for item in interactive.items] == [
        False,
        True,
    ]
    assert all(isinstance(item, CrawlerListingView) for item in crawler.items)
    assert favorite_lookup.await_count == 1
    assert interactive.pagination.total_pages == 3
    assert interactive.pagination.has_next_page is True
    assert interactive.sort == ("name", "asc")


@pytest.mark.anyio
async def test_enumerations_list_every_value_with_counts(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fake_by_category(_session: object) -> dict[str, int]:
        return {"Restaurants": 4, "Other": 1}

    async def fake_by_capital(_session: object) -> dict[str, int]:
        return {"$1M - $5M": 2}

    monkeypatch.setattr(service_module, "count_by_category", fake_by_category)
    monkeypatch.setattr(service_module, "count_by_capital_range", fake_by_capital)
    service = ListingService(AsyncMock())

    categories = await service.list_categories()
    ranges = await service.list_capital_ranges()

    assert len(categories) == 21
    assert categories[0] == {"name": "Hospitals", "count": 0}
    assert {"name": "Restaurants", "count": 4} in categories
    assert ranges[0]["name"] == "Under $1K"
    assert {"name": "$1M - $5M", "count": 2} in ranges
    assert ranges[-1] == {"name": "Undisclosed", "count": 0}


def _install_write_store(
    monkeypatch: pytest.MonkeyPatch, make_listing: Callable[..., Listing]
) -> list[Listing]:
    stored: list[Listing] = []

    async def fake_slug_exists(
        _session: object, slug: str, *, exclude_id: str | None = None
    ) -> bool:
        return any(row.slug == slug and row.id != exclude_id for row in stored)

    async def fake_insert(_session: object, values: dict[str, Any]) -> Listing:
        listing = make_listing(**values)
        stored.append(listing)
        return listing

    monkeypatch.setattr(service_module, "slug_exists", fake_slug_exists)
    monkeypatch.setattr(service_module, "insert_listing", fake_insert)
    return stored


@pytest.mark.anyio
async def test_same_name_listings_get_distinct_slugs(
    monkeypatch: pytest.MonkeyPatch, make_listing: Callable[..., Listing]
) -> None:
    _install_write_store(monkeypatch, make_listing)
    service = ListingService(AsyncMock())
    payload = ListingCreate(name="Café Delight", location="Bole, Addis Ababa")

    first = await service.create_listing(payload)
    second = await service.create_listing(payload)

    assert first.slug == "café-delight"
    assert second.slug is not None
    assert second.slug.startswith("café-delight-")
    assert first.slug != second.slug
    assert first.category == second.category == "Restaurants"
    assert first.paid_up_capital_range == "Undisclosed"


@pytest.mark.anyio
async def test_unslugifiable_name_stores_no_slug(
    monkeypatch: pytest.MonkeyPatch, make_listing: Callable[..., Listing]
) -> None:
    _install_write_store(monkeypatch, make_listing)

    listing = await ListingService(AsyncMock()).create_listing(
        ListingCreate(name="!!!", location="Bole, Addis Ababa")
    )

    assert listing.slug is None


@pytest.mark.anyio
async def test_slug_allocation_gives_up_after_max_attempts(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def always_taken(_session: object, _slug: str, **_: object) -> bool:
        return True

    monkeypatch.setattr(service_module, "slug_exists", always_taken)

    with pytest.raises(SlugCollisionError):
        await ListingService(AsyncMock()).create_listing(
            ListingCreate(name="Café Delight", location="Bole, Addis Ababa")
        )


@pytest.mark.anyio
async def test_update_rederives_from_persisted_state(
    monkeypatch: pytest.MonkeyPatch, make_listing: Callable[..., Listing]
) -> None:
    current = make_listing(name="Blue Nile Garage", slug="blue-nile-garage")
    applied: dict[str, Any] = {}

    async def fake_by_id(_session: object, _id: str, **_: object) -> Listing:
        return current

    async def fake_slug_exists(_session: object, _slug: str, **_: object) -> bool:
        return False

    async def fake_update(
        _session: object, listing_id: str, values: dict[str, Any]
    ) -> Listing:
        applied.update(values)
        return make_listing(id=listing_id, **values)

    monkeypatch.setattr(service_module, "fetch_listing_by_id", fake_by_id)
    monkeypatch.setattr(service_module, "slug_exists", fake_slug_exists)
    monkeypatch.setattr(service_module, "update_listing", fake_update)

    updated = await ListingService(AsyncMock()).update_listing(
        current.id,
        ListingUpdate(name="Blue Nile Motors", paid_up_capital=75000),
    )

    assert applied["name"] == "Blue Nile Motors"
    assert applied["slug"] == "blue-nile-motors"
    assert applied["paid_up_capital_range"] == "$50K - $100K"
    assert "category" not in applied
    assert updated is not None
    assert updated.id == current.id
    assert updated.name == "Blue Nile Motors"
    assert updated.slug == "blue-nile-motors"
    assert updated.paid_up_capital_range == "$50K - $100K"


@pytest.mark.anyio
async def test_import_records_skips_rows_rejected_by_store(
    monkeypatch: pytest.MonkeyPatch, make_listing: Callable[..., Listing]
) -> None:
    stored = _install_write_store(monkeypatch, make_listing)
    original_insert = service_module.insert_listing

    async def flaky_insert(session: object, values: dict[str, Any]) -> Listing:
        if values["name"] == "Duplicate Bank":
            raise IntegrityError("INSERT", {}, Exception("duplicate key"))
        return await original_insert(session, values)

    monkeypatch.setattr(service_module, "insert_listing", flaky_insert)
    session = AsyncMock()

    result = await ListingService(session).import_records(
        [
            {"trade_name": "Hope Academy", "region": "Oromia"},
            {"trade_name": "Duplicate Bank", "region": "Addis Ababa"},
            {"region": "Amhara"},
            {"trade_name": "Green Dairy Farm", "region": "Sidama"},
        ]
    )

    assert result.count == 2
    assert [row.name for row in stored] == ["Hope Academy", "Green Dairy Farm"]
    assert result.listing_ids == [row.id for row in stored]
    assert result.errors == [
        "row 3: missing trade name",
        "row 2: IntegrityError",
    ]
    session.rollback.assert_awaited_once()
