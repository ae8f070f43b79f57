"""Yellow-pages MCP server exposing read-only directory tools over stdio."""

from collections.abc import Callable, Iterable

from mcp.server.fastmcp import FastMCP

from src.config import get_settings
from src.mcp_server.tools.category import register_category_tools
from src.mcp_server.tools.listing import register_listing_tools

SERVER_NAME = "yellow-pages"

ToolRegistrar = Callable[[FastMCP], None]

# Each registrar paired with the tool names it adds to the server.
TOOL_REGISTRATIONS: tuple[tuple[ToolRegistrar, tuple[str, ...]], ...] = (
    (
        register_listing_tools,
        ("search_businesses", "get_business", "similar_businesses"),
    ),
    (register_category_tools, ("list_categories",)),
)

VALID_MCP_TOOL_NAMES = frozenset(
    name for _, names in TOOL_REGISTRATIONS for name in names
)


def _parse_allowlist(entries: Iterable[str]) -> list[str]:
    """Lowercase, strip and dedupe allowlist entries, keeping first-seen order."""

    cleaned = (str(entry).strip().lower() for entry in entries)
    return list(dict.fromkeys(name for name in cleaned if name))


def _check_allowlist(allowlist: Iterable[str]) -> None:
    unknown = sorted(set(allowlist) - VALID_MCP_TOOL_NAMES)
    if unknown:
        raise ValueError(
            f"Invalid MCP_ENABLED_TOOLS entries: {', '.join(unknown)}. "
            f"Valid values are: {', '.join(sorted(VALID_MCP_TOOL_NAMES))}"
        )


def create_mcp_server(enabled_tools: list[str] | None = None) -> FastMCP:
    """Build the directory MCP server.

    ``enabled_tools`` overrides the ``MCP_ENABLED_TOOLS`` setting. An empty
    allowlist exposes every directory tool; otherwise tools outside it are
    removed, and unknown names raise ``ValueError`` before the server is used.
    """

    server = FastMCP(SERVER_NAME, json_response=True)
    for register_tools, _ in TOOL_REGISTRATIONS:
        register_tools(server)

    if enabled_tools is None:
        enabled_tools = get_settings().mcp_enabled_tools
    allowlist = _parse_allowlist(enabled_tools)
    if not allowlist:
        return server

    _check_allowlist(allowlist)
    for tool_name in sorted(VALID_MCP_TOOL_NAMES.difference(allowlist)):
        server.remove_tool(tool_name)
    return server


mcp = create_mcp_server()


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
