from typing import Any

from mcp.types import Tool as MCPTool

from mcp_discovery.app.core.errors import FetchFailure
from mcp_discovery.app.core.logger import get_logger

logger = get_logger(__name__)


async def get_all_tools(session: Any) -> list[MCPTool]:
    """List every tool on the server, following ``nextCursor`` until exhausted."""
    tools: list[MCPTool] = []
    seen_cursors: set[str] = set()
    cursor: str | None = None

    while True:
        try:
            result = await session.list_tools(cursor=cursor)
        except Exception as exc:
            raise FetchFailure(f"Listing MCP tools failed: {exc}") from exc

        tools.extend(result.tools)
        cursor = getattr(result, "nextCursor", None)
        if not cursor:
            break
        if cursor in seen_cursors:
            raise FetchFailure(f"MCP server repeated pagination cursor '{cursor}'")
        seen_cursors.add(cursor)

    logger.debug(f"Listed {len(tools)} tools from MCP server")
    return tools
