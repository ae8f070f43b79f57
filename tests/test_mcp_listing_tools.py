"""Contract tests for the MCP listing and category tools."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any

import pytest

from src.listings.projection import Audience, project_listing, project_listings
from src.listings.query import ListingQuery, Pagination
from src.mcp_server.server import mcp
from src.mcp_server.tools import category as category_tools
from src.mcp_server.tools import listing as listing_tools
from src.models.listing import Listing
from src.services.listing_service import ListingPage


def _normalize_payload(mapping: Mapping[object, object]) -> dict[str, object]:
    return {str(key): value for key, value in mapping.items()}


def _extract_payload(tool_result: object) -> dict[str, object]:
    if isinstance(tool_result, dict):
        return _normalize_payload(tool_result)

    if isinstance(tool_result, tuple):
        for part in tool_result:
            if isinstance(part, dict):
                return _normalize_payload(part)
            if isinstance(part, list) and part:
                maybe_text = getattr(part[0], "text", None)
                if isinstance(maybe_text, str):
                    loaded = json.loads(maybe_text)
                    if isinstance(loaded, dict):
                        return _normalize_payload(loaded)
    raise AssertionError("Failed to extract MCP payload dict")


@asynccontextmanager
async def _fake_session_context():
    yield object()


@pytest.fixture
def listings(make_listing: Callable[..., Listing]) -> list[Listing]:
    return [
        make_listing(
            slug="blue-nile-restaurant",
            name="Blue Nile Restaurant",
            category="Restaurants",
            paid_up_capital=250000,
        ),
        make_listing(slug="abay-cafe", name="Abay Cafe", category="Restaurants"),
    ]


@pytest.mark.anyio
async def test_search_businesses_returns_crawler_projection(
    monkeypatch: pytest.MonkeyPatch, listings: list[Listing]
) -> None:
    captured: dict[str, Any] = {}

    async def fake_search(
        self: Any, query: ListingQuery, *, audience: Audience, user_id: Any = None
    ) -> ListingPage:
        captured.update(query=query, audience=audience, user_id=user_id)
        return ListingPage(
            items=project_listings(listings, audience),
            pagination=Pagination(
                current_page=query.page, items_per_page=2, total_items=5
            ),
            sort=("capital", "desc"),
        )

    monkeypatch.setattr(listing_tools, "session_context", _fake_session_context)
    monkeypatch.setattr(listing_tools.ListingService, "search", fake_search)

    result = await mcp.call_tool(
        "search_businesses",
        {
            "category": "restaurants",
            "min_capital": 1000,
            "sort_by": "capital",
            "page": 0,
            "limit": 2,
        },
    )
    payload = _extract_payload(result)
    items = payload["items"]

    assert captured["audience"] is Audience.CRAWLER
    assert captured["user_id"] is None
    assert captured["query"].page == 1
    assert captured["query"].min_capital == Decimal(1000)
    assert payload["count"] == 2
    assert isinstance(items, list)
    assert items[0]["slug"] == "blue-nile-restaurant"
    assert "phone" not in items[0]
    assert "paidUpCapital" not in items[0]
    assert payload["query"]["sort"] == ["capital", "desc"]
    assert payload["pagination"]["totalPages"] == 3
    assert "message" not in payload


@pytest.mark.anyio
async def test_search_businesses_empty_result_has_message(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fake_search(self: Any, query: ListingQuery, **_: Any) -> ListingPage:
        return ListingPage(
            items=[],
            pagination=Pagination(current_page=1, items_per_page=20, total_items=0),
            sort=("name", "asc"),
        )

    monkeypatch.setattr(listing_tools, "session_context", _fake_session_context)
    monkeypatch.setattr(listing_tools.ListingService, "search", fake_search)

    result = await mcp.call_tool("search_businesses", {"search": "nothing here"})
    payload = _extract_payload(result)

    assert payload["count"] == 0
    assert payload["message"] == listing_tools.EMPTY_RESULTS_MESSAGE


@pytest.mark.anyio
async def test_get_business_found_and_not_found(
    monkeypatch: pytest.MonkeyPatch, listings: list[Listing]
) -> None:
    async def fake_get_detail(
        self: Any, id_or_slug: str, *, audience: Audience, user_id: Any = None
    ) -> Any:
        assert audience is Audience.CRAWLER
        for listing in listings:
            if listing.slug == id_or_slug:
                return project_listing(listing, audience)
        return None

    monkeypatch.setattr(listing_tools, "session_context", _fake_session_context)
    monkeypatch.setattr(listing_tools.ListingService, "get_detail", fake_get_detail)

    found = _extract_payload(
        await mcp.call_tool("get_business", {"id_or_slug": "abay-cafe"})
    )
    missing = _extract_payload(
        await mcp.call_tool("get_business", {"id_or_slug": "unknown"})
    )

    assert found["status"] == "ok"
    assert found["item"]["name"] == "Abay Cafe"
    assert "email" not in found["item"]
    assert missing == {
        "id_or_slug": "unknown",
        "status": "not_found",
        "message": "Business not found",
    }


@pytest.mark.anyio
async def test_similar_businesses_passes_limit(
    monkeypatch: pytest.MonkeyPatch, listings: list[Listing]
) -> None:
    captured: dict[str, Any] = {}

    async def fake_get_similar(
        self: Any,
        id_or_slug: str,
        *,
        audience: Audience,
        user_id: Any = None,
        limit: int | None = None,
    ) -> Any:
        captured.update(id_or_slug=id_or_slug, limit=limit, audience=audience)
        return project_listings(listings[1:], audience)

    monkeypatch.setattr(listing_tools, "session_context", _fake_session_context)
    monkeypatch.setattr(
        listing_tools.ListingService, "get_similar", fake_get_similar
    )

    payload = _extract_payload(
        await mcp.call_tool(
            "similar_businesses",
            {"id_or_slug": "blue-nile-restaurant", "limit": 3},
        )
    )

    assert captured == {
        "id_or_slug": "blue-nile-restaurant",
        "limit": 3,
        "audience": Audience.CRAWLER,
    }
    assert payload["count"] == 1
    assert payload["items"][0]["slug"] == "abay-cafe"


@pytest.mark.anyio
async def test_list_categories_cache_miss_uses_service_and_sets_cache(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    counts = [{"name": "Restaurants", "count": 2}, {"name": "Other", "count": 1}]
    cache_set_calls: list[tuple[str, Any, int]] = []

    async def fake_cache_get(_key: str) -> None:
        return None

    async def fake_cache_set(key: str, value: Any, ttl_seconds: int) -> None:
        cache_set_calls.append((key, value, ttl_seconds))

    async def fake_list_categories(self: Any) -> list[dict[str, object]]:
        return counts

    monkeypatch.setattr(category_tools, "cache_get", fake_cache_get)
    monkeypatch.setattr(category_tools, "cache_set", fake_cache_set)
    monkeypatch.setattr(category_tools, "session_context", _fake_session_context)
    monkeypatch.setattr(
        category_tools.ListingService, "list_categories", fake_list_categories
    )

    payload = _extract_payload(await mcp.call_tool("list_categories", {}))

    assert payload == {"count": 2, "items": counts, "cache_hit": False}
    assert len(cache_set_calls) == 1
    assert cache_set_calls[0][0].startswith("listings:categories:")
    assert cache_set_calls[0][1] == counts


@pytest.mark.anyio
async def test_list_categories_cache_hit_skips_session_and_service(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    counts = [{"name": "Technology", "count": 4}]

    async def fake_cache_get(_key: str) -> str:
        return json.dumps(counts)

    @asynccontextmanager
    async def forbidden_session_context():
        raise AssertionError("session_context must not be called on cache hit")
        yield object()  # pragma: no cover

    monkeypatch.setattr(category_tools, "cache_get", fake_cache_get)
    monkeypatch.setattr(
        category_tools, "session_context", forbidden_session_context
    )

    payload = _extract_payload(await mcp.call_tool("list_categories", {}))

    assert payload == {"count": 1, "items": counts, "cache_hit": True}
