"""MCP tools for business listing search and lookup."""

from decimal import Decimal

from mcp.server.fastmcp import FastMCP

from src.db.session import session_context
from src.listings.projection import Audience, dump_projection
from src.listings.query import ListingQuery
from src.services.listing_service import ListingService

EMPTY_RESULTS_MESSAGE = "No active businesses matched the given filters."


def _decimal(value: float | None) -> Decimal | None:
    return Decimal(str(value)) if value is not None else None


def register_listing_tools(mcp: FastMCP) -> None:
    """Register listing-related tools on a FastMCP server.

    Tool callers are indexing agents: they receive the crawler projection and
    never bump view counters.
    """

    @mcp.tool(name="search_businesses")
    async def search_businesses(
        search: str | None = None,
        category: str | None = None,
        location: str | None = None,
        paid_up_capital_range: str | None = None,
        min_capital: float | None = None,
        max_capital: float | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, object]:
        query = ListingQuery(
            search=search,
            category=category,
            location=location,
            paid_up_capital_range=paid_up_capital_range,
            min_capital=_decimal(min_capital),
            max_capital=_decimal(max_capital),
            sort_by=sort_by,
            sort_order=sort_order,
            page=max(page, 1),
            limit=limit,
        )
        async with session_context() as session:
            result = await ListingService(session).search(
                query, audience=Audience.CRAWLER
            )

        payload: dict[str, object] = {
            "query": {
                "search": search,
                "category": category,
                "location": location,
                "paid_up_capital_range": paid_up_capital_range,
                "min_capital": min_capital,
                "max_capital": max_capital,
                "sort": list(result.sort),
                "page": result.pagination.current_page,
                "limit": result.pagination.items_per_page,
            },
            "count": len(result.items),
            "items": [dump_projection(item) for item in result.items],
            "pagination": result.pagination.as_dict(),
        }
        if not result.items:
            payload["message"] = EMPTY_RESULTS_MESSAGE
        return payload

    @mcp.tool(name="get_business")
    async def get_business(id_or_slug: str) -> dict[str, object]:
        async with session_context() as session:
            view = await ListingService(session).get_detail(
                id_or_slug, audience=Audience.CRAWLER
            )

        if view is None:
            return {
                "id_or_slug": id_or_slug,
                "status": "not_found",
                "message": "Business not found",
            }
        return {"status": "ok", "item": dump_projection(view)}

    @mcp.tool(name="similar_businesses")
    async def similar_businesses(
        id_or_slug: str, limit: int | None = None
    ) -> dict[str, object]:
        async with session_context() as session:
            similar = await ListingService(session).get_similar(
                id_or_slug, audience=Audience.CRAWLER, limit=limit
            )

        if similar is None:
            return {
                "id_or_slug": id_or_slug,
                "status": "not_found",
                "message": "Business not found",
            }
        return {
            "status": "ok",
            "count": len(similar),
            "items": [dump_projection(item) for item in similar],
        }
