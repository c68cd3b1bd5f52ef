"""Load-option operations backing the MCP client node's dropdowns.

Each call builds a fresh connection descriptor, opens its own session and
closes it before returning. Nothing is cached between calls.
"""

from dataclasses import dataclass
from typing import Any, AsyncContextManager, Callable

from mcp.types import Tool as MCPTool

from mcp_discovery.app.core.auth import CredentialsProvider
from mcp_discovery.app.core.errors import ConfigurationIncomplete, ConnectionFailure
from mcp_discovery.app.core.logger import get_logger
from mcp_discovery.app.schemas.discovery import LEGACY_NODE_VERSION, DiscoveryRequest, LoadOption
from mcp_discovery.app.services.discovery.catalog import get_all_tools
from mcp_discovery.app.services.discovery.connector import connect_mcp_client
from mcp_discovery.app.services.discovery.descriptor import (
    ConnectionDescriptor,
    build_connection_descriptor,
    resolve_connection_target,
)
from mcp_discovery.app.services.discovery.filters import ToolFilter, filter_tools
from mcp_discovery.app.services.discovery.parameters import (
    find_tool,
    flatten_parameters,
    flatten_tool_parameters,
)

logger = get_logger(__name__)

Connector = Callable[[ConnectionDescriptor], AsyncContextManager[Any]]

CONFIGURE_ENDPOINT_OPTION = LoadOption(
    name="⚠️ Configure endpoint first",
    value="",
    description="Please configure the MCP server endpoint above",
)
CONNECTION_FAILED_OPTION = LoadOption(
    name="❌ Failed to connect to MCP server",
    value="",
    description="Check your endpoint and authentication settings",
)


@dataclass
class ParameterDiscovery:
    options: list[LoadOption]
    error: Exception | None = None


async def _discover_tools(
    request: DiscoveryRequest,
    credentials: CredentialsProvider,
    connector: Connector,
) -> list[MCPTool]:
    _, endpoint_url = resolve_connection_target(request)
    if not endpoint_url:
        legacy = int(request.node_version) == LEGACY_NODE_VERSION
        raise ConfigurationIncomplete("sse_endpoint" if legacy else "endpoint_url")

    descriptor = await build_connection_descriptor(request, credentials)
    async with connector(descriptor) as session:
        return await get_all_tools(session)


async def get_tool_names(
    request: DiscoveryRequest,
    credentials: CredentialsProvider,
    connector: Connector = connect_mcp_client,
) -> list[LoadOption]:
    """Every tool on the server. Connection and listing failures propagate."""
    try:
        tools = await _discover_tools(request, credentials, connector)
    except ConfigurationIncomplete:
        return [CONFIGURE_ENDPOINT_OPTION]

    return [LoadOption(name=tool.name, value=tool.name, description=tool.description) for tool in tools]


async def discover_filtered_tool_parameters(
    request: DiscoveryRequest,
    credentials: CredentialsProvider,
    connector: Connector = connect_mcp_client,
) -> ParameterDiscovery:
    try:
        policy = ToolFilter.from_parameters(request.include, request.include_tools, request.exclude_tools)
        tools = await _discover_tools(request, credentials, connector)
    except ConfigurationIncomplete as exc:
        return ParameterDiscovery([CONFIGURE_ENDPOINT_OPTION], exc)
    except ConnectionFailure as exc:
        logger.warning(f"Tool parameter discovery could not connect: {exc}")
        return ParameterDiscovery([CONNECTION_FAILED_OPTION], exc)
    except Exception as exc:
        logger.warning(f"Tool parameter discovery failed: {exc}")
        return ParameterDiscovery([], exc)

    return ParameterDiscovery(flatten_parameters(filter_tools(tools, policy)))


async def get_filtered_tool_parameters(
    request: DiscoveryRequest,
    credentials: CredentialsProvider,
    connector: Connector = connect_mcp_client,
) -> list[LoadOption]:
    """Parameters of the included tools as ``tool.parameter`` options. Never raises."""
    discovery = await discover_filtered_tool_parameters(request, credentials, connector)
    return discovery.options


async def get_single_tool_parameters(
    request: DiscoveryRequest,
    credentials: CredentialsProvider,
    connector: Connector = connect_mcp_client,
) -> list[LoadOption]:
    tool_name = request.tool_name.strip()
    if not tool_name:
        return []

    try:
        tools = await _discover_tools(request, credentials, connector)
    except ConfigurationIncomplete:
        return [CONFIGURE_ENDPOINT_OPTION]

    return flatten_tool_parameters(find_tool(tools, tool_name))
