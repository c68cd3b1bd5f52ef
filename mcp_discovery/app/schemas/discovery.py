from enum import Enum
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


LEGACY_NODE_VERSION = 1


class TransportKind(str, Enum):
    SSE = "sse"
    HTTP_STREAMABLE = "httpStreamable"


class McpAuthenticationOption(str, Enum):
    NONE = "none"
    HEADER_AUTH = "headerAuth"
    BEARER_AUTH = "bearerAuth"
    OAUTH2 = "mcpOAuth2Api"


class McpCredentials(BaseModel):
    model_config = ConfigDict(extra="forbid")

    header_name: str | None = None
    header_value: str | None = None
    bearer_token: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    token_type: str = "Bearer"
    token_url: str | None = None
    client_id: str | None = None
    client_secret: str | None = None


class LoadOption(BaseModel):
    """One selectable entry returned to the host UI."""

    name: str
    value: str
    description: str | None = None


class DiscoveryRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    node_version: float = 2
    authentication: McpAuthenticationOption = McpAuthenticationOption.NONE
    server_transport: TransportKind = TransportKind.HTTP_STREAMABLE
    endpoint_url: str = ""
    sse_endpoint: str = ""
    include: str = "all"
    include_tools: list[str] = Field(default_factory=list)
    exclude_tools: list[str] = Field(default_factory=list)
    tool_name: str = ""
    credentials: McpCredentials | None = None

    @field_validator("endpoint_url", "sse_endpoint")
    @classmethod
    def validate_endpoint(cls, value: str) -> str:
        url = value.strip()
        # An empty endpoint is rendered as a configuration hint, not rejected.
        if not url:
            return url

        parsed = urlparse(url)
        if parsed.scheme not in {"http", "https"}:
            raise ValueError("URL must start with http:// or https://")
        if not parsed.hostname:
            raise ValueError("URL must include a valid hostname or IP address")
        return url
