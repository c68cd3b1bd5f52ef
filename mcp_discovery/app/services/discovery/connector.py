from __future__ import annotations

from contextlib import AsyncExitStack, asynccontextmanager
from datetime import timedelta
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable

import httpx
from mcp import ClientSession
from mcp.client.sse import sse_client
from mcp.client.streamable_http import streamable_http_client
from mcp.types import Implementation

from mcp_discovery.env import ENV
from mcp_discovery.app.core.errors import ConnectionFailure
from mcp_discovery.app.core.logger import get_logger
from mcp_discovery.app.schemas.discovery import TransportKind
from mcp_discovery.app.services.discovery.descriptor import ConnectionDescriptor

logger = get_logger(__name__)


class UnauthorizedError(Exception):
    """The MCP server answered a connection attempt with HTTP 401."""


class AttemptState(str, Enum):
    INITIAL = "initial"
    RETRIED_ONCE = "retried_once"


SessionOpener = Callable[[ConnectionDescriptor, dict[str, str], AsyncExitStack], Awaitable[Any]]


class _ChallengeTracker:
    def __init__(self) -> None:
        self.unauthorized = False

    async def on_response(self, response: httpx.Response) -> None:
        if response.status_code == 401:
            self.unauthorized = True


def _http_client_factory(tracker: _ChallengeTracker):
    def factory(
        headers: dict[str, str] | None = None,
        timeout: httpx.Timeout | None = None,
        auth: httpx.Auth | None = None,
    ) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=headers,
            timeout=timeout or httpx.Timeout(ENV.mcp_http_timeout_sec, read=ENV.mcp_sse_read_timeout_sec),
            auth=auth,
            event_hooks={"response": [tracker.on_response]},
        )

    return factory


async def _unwind(stack: AsyncExitStack, exc: BaseException) -> BaseException | None:
    """Exit ``stack`` with ``exc`` in flight.

    Returns the exception that comes out of the unwinding, or ``None`` when the
    stack suppressed it. Task-group based transports cancel the awaiting task
    when a background request fails; the real error only surfaces here.
    """
    try:
        suppressed = await stack.__aexit__(type(exc), exc, exc.__traceback__)
    except BaseException as unwound:
        return unwound
    return None if suppressed else exc


async def open_mcp_session(
    descriptor: ConnectionDescriptor,
    headers: dict[str, str],
    stack: AsyncExitStack,
) -> ClientSession:
    """Open transport and MCP session on ``stack`` and run the initialize handshake.

    On failure the stack is already unwound when this raises.
    """
    tracker = _ChallengeTracker()
    factory = _http_client_factory(tracker)

    try:
        if descriptor.transport == TransportKind.SSE:
            read_stream, write_stream = await stack.enter_async_context(
                sse_client(
                    descriptor.endpoint_url,
                    headers=headers,
                    timeout=ENV.mcp_http_timeout_sec,
                    sse_read_timeout=ENV.mcp_sse_read_timeout_sec,
                    httpx_client_factory=factory,
                )
            )
        else:
            http_client = await stack.enter_async_context(factory(headers=headers))
            read_stream, write_stream, _ = await stack.enter_async_context(
                streamable_http_client(descriptor.endpoint_url, http_client=http_client)
            )

        session = await stack.enter_async_context(
            ClientSession(
                read_stream,
                write_stream,
                read_timeout_seconds=timedelta(seconds=ENV.mcp_http_timeout_sec),
                client_info=Implementation(name=descriptor.client_name, version=descriptor.client_version),
            )
        )
        await session.initialize()
    except BaseException as exc:
        failure = await _unwind(stack, exc)
        if failure is not None and not isinstance(failure, Exception):
            raise failure
        if tracker.unauthorized:
            raise UnauthorizedError(f"MCP server at '{descriptor.endpoint_url}' returned 401") from (failure or exc)
        if failure is None:
            raise ConnectionError(f"MCP session setup with '{descriptor.endpoint_url}' was cancelled") from exc
        raise failure

    return session


def is_unauthorized(exc: BaseException) -> bool:
    """Look for a 401 in ``exc``, its exception groups and its chained causes."""
    pending: list[BaseException] = [exc]
    seen: set[int] = set()
    while pending:
        current = pending.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))

        if isinstance(current, UnauthorizedError):
            return True
        if isinstance(current, httpx.HTTPStatusError) and current.response.status_code == 401:
            return True
        if isinstance(current, BaseExceptionGroup):
            pending.extend(current.exceptions)
        if current.__cause__ is not None:
            pending.append(current.__cause__)
        if current.__context__ is not None:
            pending.append(current.__context__)
    return False


async def _open_attempt(
    opener: SessionOpener,
    descriptor: ConnectionDescriptor,
    headers: dict[str, str],
) -> tuple[Any, AsyncExitStack]:
    """Run one session attempt; on failure raise what the unwound stack raised.

    Cancellation that is still a ``BaseException`` after unwinding belongs to
    the caller and is re-raised unchanged.
    """
    stack = AsyncExitStack()
    try:
        session = await opener(descriptor, headers, stack)
    except BaseException as exc:
        failure = await _unwind(stack, exc)
        if failure is None:
            raise ConnectionError(f"MCP session setup with '{descriptor.endpoint_url}' was cancelled") from exc
        raise failure
    return session, stack


@asynccontextmanager
async def connect_mcp_client(
    descriptor: ConnectionDescriptor,
    opener: SessionOpener = open_mcp_session,
) -> AsyncIterator[Any]:
    """Yield a live MCP session for ``descriptor`` or raise ``ConnectionFailure``.

    A 401 on the first attempt calls ``descriptor.on_unauthorized`` once and
    retries once with the headers it returns. The session is closed when the
    context exits.
    """
    if not isinstance(descriptor.transport, TransportKind):
        raise ValueError(f"Unsupported MCP transport: {descriptor.transport!r}")

    headers = dict(descriptor.headers)
    state = AttemptState.INITIAL

    while True:
        try:
            session, stack = await _open_attempt(opener, descriptor, headers)
            break
        except Exception as exc:
            if state == AttemptState.RETRIED_ONCE:
                raise ConnectionFailure(descriptor.endpoint_url, f"retry after credential refresh failed: {exc}") from exc
            if not is_unauthorized(exc) or descriptor.on_unauthorized is None:
                raise ConnectionFailure(descriptor.endpoint_url, str(exc)) from exc

            logger.info(f"MCP server at {descriptor.endpoint_url} rejected credentials, refreshing once")
            try:
                refreshed = await descriptor.on_unauthorized(dict(headers))
            except Exception as refresh_exc:
                raise ConnectionFailure(descriptor.endpoint_url, f"credential refresh failed: {refresh_exc}") from refresh_exc
            if refreshed is None:
                raise ConnectionFailure(descriptor.endpoint_url, "unauthorized and credentials could not be refreshed") from exc

            headers = dict(refreshed)
            state = AttemptState.RETRIED_ONCE

    async with stack:
        yield session
