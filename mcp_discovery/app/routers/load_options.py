from typing import Any

from fastapi import APIRouter, HTTPException, status

from mcp_discovery.app.core.errors import ConnectionFailure, FetchFailure
from mcp_discovery.app.schemas.discovery import DiscoveryRequest, LoadOption


def create_load_options_router(
    credentials_provider_factory,
    get_tool_names_fn,
    get_filtered_tool_parameters_fn,
    get_single_tool_parameters_fn,
) -> APIRouter:
    router = APIRouter(prefix="/load-options")

    async def _run_strict(fn, payload: DiscoveryRequest) -> list[LoadOption]:
        try:
            return await fn(payload, credentials_provider_factory(payload.credentials))
        except ConnectionFailure as exc:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Could not connect to your MCP server",
            ) from exc
        except FetchFailure as exc:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    @router.post(
        "/tools",
        summary="List MCP Tools",
        description="List tool names exposed by the configured MCP server. Source: mcp_discovery/app/routers/load_options.py",
    )
    async def list_tools(payload: DiscoveryRequest) -> dict[str, Any]:
        options = await _run_strict(get_tool_names_fn, payload)
        return {"options": [option.model_dump() for option in options]}

    @router.post(
        "/tool-parameters",
        summary="List Filtered Tool Parameters",
        description=(
            "Flatten parameters of the tools selected by include/exclude settings into "
            "'tool.parameter' options. Never fails. Source: mcp_discovery/app/routers/load_options.py"
        ),
    )
    async def list_tool_parameters(payload: DiscoveryRequest) -> dict[str, Any]:
        options = await get_filtered_tool_parameters_fn(payload, credentials_provider_factory(payload.credentials))
        return {"options": [option.model_dump() for option in options]}

    @router.post(
        "/tool-parameters/single",
        summary="List Single Tool Parameters",
        description="List parameters of the tool named in tool_name. Source: mcp_discovery/app/routers/load_options.py",
    )
    async def list_single_tool_parameters(payload: DiscoveryRequest) -> dict[str, Any]:
        options = await _run_strict(get_single_tool_parameters_fn, payload)
        return {"options": [option.model_dump() for option in options]}

    return router
