from dataclasses import dataclass, field
from typing import Awaitable, Callable, Mapping

from mcp_discovery.env import ENV
from mcp_discovery.app.core.auth import CredentialsProvider
from mcp_discovery.app.core.mcp_runtime import CLIENT_VERSION
from mcp_discovery.app.schemas.discovery import LEGACY_NODE_VERSION, DiscoveryRequest, TransportKind


UnauthorizedHandler = Callable[[dict[str, str]], Awaitable[dict[str, str] | None]]


@dataclass(frozen=True)
class ConnectionDescriptor:
    transport: TransportKind
    endpoint_url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    client_name: str = ENV.mcp_client_name
    client_version: str = CLIENT_VERSION
    on_unauthorized: UnauthorizedHandler | None = None


def resolve_connection_target(request: DiscoveryRequest) -> tuple[TransportKind, str]:
    """Pick transport and endpoint for the node version.

    Version 1 nodes only knew the SSE transport and stored the endpoint under
    ``sse_endpoint``; the explicit transport selection is ignored for them.
    """
    if int(request.node_version) == LEGACY_NODE_VERSION:
        return TransportKind.SSE, request.sse_endpoint
    return TransportKind(request.server_transport), request.endpoint_url


async def build_connection_descriptor(
    request: DiscoveryRequest,
    credentials: CredentialsProvider,
) -> ConnectionDescriptor:
    transport, resolved_url = resolve_connection_target(request)
    headers = await credentials.get_auth_headers(request.authentication)

    async def on_unauthorized(current_headers: dict[str, str]) -> dict[str, str] | None:
        return await credentials.refresh(request.authentication, current_headers)

    return ConnectionDescriptor(
        transport=transport,
        endpoint_url=resolved_url,
        headers=headers,
        on_unauthorized=on_unauthorized,
    )
