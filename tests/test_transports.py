"""Discovery against local MCP servers over SSE and streamable HTTP."""

import socket
import threading
import time
from contextlib import contextmanager

import pytest
import uvicorn
from conftest import FakeCredentials
from mcp.server.fastmcp import FastMCP
from starlette.responses import PlainTextResponse

from mcp_discovery.app.core.errors import ConnectionFailure
from mcp_discovery.app.schemas.discovery import DiscoveryRequest, LoadOption, TransportKind
from mcp_discovery.app.services.discovery.catalog import get_all_tools
from mcp_discovery.app.services.discovery.connector import connect_mcp_client
from mcp_discovery.app.services.discovery.descriptor import ConnectionDescriptor
from mcp_discovery.app.services.discovery.load_options import (
    CONNECTION_FAILED_OPTION,
    get_filtered_tool_parameters,
)

ACCEPTED_TOKEN = "Bearer fresh"


class CredentialGate:
    """ASGI wrapper answering 401 unless the request carries ``ACCEPTED_TOKEN``.

    ``forced_status`` answers every HTTP request with that status instead.
    """

    def __init__(self, app):
        self.app = app
        self.forced_status: int | None = None
        self.rejected: list[str] = []

    def reset(self) -> None:
        self.forced_status = None
        self.rejected = []

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http":
            token = dict(scope["headers"]).get(b"authorization", b"").decode()
            status = self.forced_status
            if status is None and token != ACCEPTED_TOKEN:
                self.rejected.append(token)
                status = 401
            if status is not None:
                await PlainTextResponse("rejected", status_code=status)(scope, receive, send)
                return
        await self.app(scope, receive, send)


def _mcp_server() -> FastMCP:
    server = FastMCP("discovery-test-server")

    @server.tool()
    def search(q: str, limit: int = 10) -> str:
        return q

    return server


@contextmanager
def _serve(app):
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]

    server = uvicorn.Server(
        uvicorn.Config(app, host="127.0.0.1", port=port, log_level="warning", timeout_graceful_shutdown=1)
    )
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()

    deadline = time.monotonic() + 10
    while not server.started:
        if not thread.is_alive() or time.monotonic() > deadline:
            raise RuntimeError("local MCP server did not start")
        time.sleep(0.05)

    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        server.should_exit = True
        thread.join(timeout=10)


@pytest.fixture(scope="module")
def sse_server():
    gate = CredentialGate(_mcp_server().sse_app())
    with _serve(gate) as base_url:
        yield gate, f"{base_url}/sse"


@pytest.fixture(scope="module")
def streamable_server():
    gate = CredentialGate(_mcp_server().streamable_http_app())
    with _serve(gate) as base_url:
        yield gate, f"{base_url}/mcp"


@pytest.fixture(params=[TransportKind.SSE, TransportKind.HTTP_STREAMABLE], ids=["sse", "streamable-http"])
def mcp_server(request):
    fixture_name = "sse_server" if request.param == TransportKind.SSE else "streamable_server"
    gate, url = request.getfixturevalue(fixture_name)
    gate.reset()
    return request.param, gate, url


class CountingRefresher:
    def __init__(self, token: str = ACCEPTED_TOKEN):
        self.token = token
        self.calls: list[dict[str, str]] = []

    async def __call__(self, headers):
        self.calls.append(headers)
        return {**headers, "Authorization": self.token}


def _descriptor(transport: TransportKind, url: str, refresher) -> ConnectionDescriptor:
    return ConnectionDescriptor(
        transport=transport,
        endpoint_url=url,
        headers={"Authorization": "Bearer stale"},
        client_name="test-client",
        client_version="1.0.0",
        on_unauthorized=refresher,
    )


class TestLiveTransports:
    @pytest.mark.asyncio
    async def test_accepted_credentials_connect_without_refresh(self, mcp_server):
        transport, gate, url = mcp_server
        refresher = CountingRefresher()
        descriptor = ConnectionDescriptor(
            transport=transport,
            endpoint_url=url,
            headers={"Authorization": ACCEPTED_TOKEN},
            client_name="test-client",
            client_version="1.0.0",
            on_unauthorized=refresher,
        )

        async with connect_mcp_client(descriptor) as session:
            tools = await get_all_tools(session)

        assert [tool.name for tool in tools] == ["search"]
        assert refresher.calls == []
        assert gate.rejected == []

    @pytest.mark.asyncio
    async def test_challenge_refreshes_once_and_reconnects(self, mcp_server):
        transport, gate, url = mcp_server
        refresher = CountingRefresher()

        async with connect_mcp_client(_descriptor(transport, url, refresher)) as session:
            tools = await get_all_tools(session)

        assert [tool.name for tool in tools] == ["search"]
        assert refresher.calls == [{"Authorization": "Bearer stale"}]
        assert set(gate.rejected) == {"Bearer stale"}

    @pytest.mark.asyncio
    async def test_second_challenge_is_a_connection_failure(self, mcp_server):
        transport, gate, url = mcp_server
        refresher = CountingRefresher(token="Bearer still-stale")

        with pytest.raises(ConnectionFailure):
            async with connect_mcp_client(_descriptor(transport, url, refresher)):
                pass

        assert len(refresher.calls) == 1
        assert list(dict.fromkeys(gate.rejected)) == ["Bearer stale", "Bearer still-stale"]

    @pytest.mark.asyncio
    async def test_server_error_is_not_retried(self, mcp_server):
        transport, gate, url = mcp_server
        gate.forced_status = 500
        refresher = CountingRefresher()

        with pytest.raises(ConnectionFailure):
            async with connect_mcp_client(_descriptor(transport, url, refresher)):
                pass

        assert refresher.calls == []


class TestFilteredParametersOverLiveTransports:
    @pytest.mark.asyncio
    async def test_refreshed_credentials_yield_parameters(self, mcp_server):
        transport, gate, url = mcp_server
        credentials = FakeCredentials()

        options = await get_filtered_tool_parameters(
            DiscoveryRequest(endpoint_url=url, server_transport=transport), credentials
        )

        assert options == [
            LoadOption(name="search → q ⭐", value="search.q", description="Parameter q of tool search"),
            LoadOption(name="search → limit", value="search.limit", description="Parameter limit of tool search"),
        ]
        assert credentials.refresh_calls == 1

    @pytest.mark.asyncio
    async def test_server_error_yields_connection_failed_option(self, mcp_server):
        transport, gate, url = mcp_server
        gate.forced_status = 500
        credentials = FakeCredentials()

        options = await get_filtered_tool_parameters(
            DiscoveryRequest(endpoint_url=url, server_transport=transport), credentials
        )

        assert options == [CONNECTION_FAILED_OPTION]
        assert credentials.refresh_calls == 0

    @pytest.mark.asyncio
    async def test_rejected_refresh_yields_connection_failed_option(self, mcp_server):
        transport, gate, url = mcp_server
        credentials = FakeCredentials(headers={"Authorization": "Bearer revoked"})
        gate.forced_status = 401

        options = await get_filtered_tool_parameters(
            DiscoveryRequest(endpoint_url=url, server_transport=transport), credentials
        )

        assert options == [CONNECTION_FAILED_OPTION]
        assert credentials.refresh_calls == 1
