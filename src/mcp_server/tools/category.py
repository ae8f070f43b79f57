"""MCP tools for listing enumerations."""

import json
from typing import cast

from mcp.server.fastmcp import FastMCP

from src.cache import CATEGORY_COUNTS, build_cache_key, cache_get, cache_set
from src.config import get_settings
from src.db.session import session_context
from src.services.listing_service import ListingService

settings = get_settings()


def register_category_tools(mcp: FastMCP) -> None:
    """Register category tools on a FastMCP server."""

    @mcp.tool(name="list_categories")
    async def list_categories() -> dict[str, object]:
        cache_key = build_cache_key(CATEGORY_COUNTS)
        cached = await cache_get(cache_key)
        if cached:
            categories = cast(list[dict[str, object]], json.loads(cached))
            return {"count": len(categories), "items": categories, "cache_hit": True}

        async with session_context() as session:
            categories = await ListingService(session).list_categories()

        await cache_set(cache_key, categories, settings.listing_cache_ttl_seconds)
        return {"count": len(categories), "items": categories, "cache_hit": False}
