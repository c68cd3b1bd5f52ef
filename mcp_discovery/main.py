from typing import Any

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mcp_discovery.env import ENV
from mcp_discovery.app.core.auth import StoredCredentialsProvider
from mcp_discovery.app.core.logger import get_logger
from mcp_discovery.app.core.mcp_runtime import CLIENT_VERSION, MCP_RUNTIME_INFO
from mcp_discovery.app.routers.health import create_health_router
from mcp_discovery.app.routers.load_options import create_load_options_router
from mcp_discovery.app.services.discovery.load_options import (
    get_filtered_tool_parameters,
    get_single_tool_parameters,
    get_tool_names,
)

logger = get_logger(__name__)

app = FastAPI(title="MCP Tool Discovery")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(ENV.cors_allow_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get(
    "/mcp/runtime",
    tags=["Health"],
    summary="MCP Runtime Info",
    description="Shows the MCP client package and version in use. Source: mcp_discovery/main.py",
)
def get_mcp_runtime() -> dict[str, Any]:
    return MCP_RUNTIME_INFO


app.include_router(
    create_health_router(
        ENV.mcp_client_name,
        CLIENT_VERSION,
        MCP_RUNTIME_INFO["version"],
    ),
    tags=["Health"],
)
app.include_router(
    create_load_options_router(
        StoredCredentialsProvider,
        get_tool_names,
        get_filtered_tool_parameters,
        get_single_tool_parameters,
    ),
    tags=["Load Options"],
)


def run() -> None:
    logger.info(f"Starting MCP tool discovery API on {ENV.api_host}:{ENV.api_port}")
    uvicorn.run("mcp_discovery.main:app", host=ENV.api_host, port=ENV.api_port)


if __name__ == "__main__":
    run()
