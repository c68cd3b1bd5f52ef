"""Shared fakes for discovery tests."""

from contextlib import asynccontextmanager

import pytest
from mcp.types import ListToolsResult, Tool

from mcp_discovery.app.core.errors import ConnectionFailure


def make_tool(name: str, properties: dict | None = None, required: list[str] | None = None, **schema) -> Tool:
    input_schema = {"type": "object", **schema}
    if properties is not None:
        input_schema["properties"] = properties
    if required is not None:
        input_schema["required"] = required
    return Tool(name=name, description=f"{name} tool", inputSchema=input_schema)


class FakeSession:
    """Serves ``pages`` of tools, one per ``list_tools`` call."""

    def __init__(self, pages: list[list[Tool]], error: Exception | None = None):
        self.pages = pages
        self.error = error
        self.cursors: list[str | None] = []

    async def list_tools(self, cursor: str | None = None) -> ListToolsResult:
        self.cursors.append(cursor)
        if self.error is not None:
            raise self.error
        index = 0 if cursor is None else int(cursor)
        next_cursor = str(index + 1) if index + 1 < len(self.pages) else None
        return ListToolsResult(tools=self.pages[index], nextCursor=next_cursor)


class FakeCredentials:
    def __init__(self, headers: dict[str, str] | None = None):
        self.headers = headers if headers is not None else {"Authorization": "Bearer stale"}
        self.header_calls = 0
        self.refresh_calls = 0

    async def get_auth_headers(self, authentication):
        self.header_calls += 1
        return dict(self.headers)

    async def refresh(self, authentication, headers):
        self.refresh_calls += 1
        return {**headers, "Authorization": "Bearer fresh"}


class RecordingConnector:
    def __init__(self, session: FakeSession | None = None, failure: Exception | None = None):
        self.session = session
        self.failure = failure
        self.descriptors = []

    @asynccontextmanager
    async def __call__(self, descriptor):
        self.descriptors.append(descriptor)
        if self.failure is not None:
            raise self.failure
        yield self.session


@pytest.fixture
def search_catalog() -> list[Tool]:
    return [make_tool("search", {"q": {"type": "string"}}, ["q"])]


@pytest.fixture
def catalog() -> list[Tool]:
    return [
        make_tool(
            "search",
            {"q": {"type": "string", "description": "Query text"}, "limit": {"type": "integer"}},
            ["q"],
        ),
        make_tool("fetch", {"url": {"type": "string"}}, ["url"]),
        make_tool("ping"),
        make_tool("export", {"format": {"type": "string"}, "q": {"type": "string"}}),
    ]


@pytest.fixture
def connection_failure() -> ConnectionFailure:
    return ConnectionFailure("http://localhost:8005/mcp", "connection refused")
