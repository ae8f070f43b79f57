"""MCP tools package."""

from src.mcp_server.tools.category import register_category_tools
from src.mcp_server.tools.listing import register_listing_tools

__all__ = [
    "register_category_tools",
    "register_listing_tools",
]
