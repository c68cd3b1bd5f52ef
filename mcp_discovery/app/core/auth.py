from typing import Any, Callable, Protocol

import httpx

from mcp_discovery.env import ENV
from mcp_discovery.app.core.logger import get_logger
from mcp_discovery.app.schemas.discovery import McpAuthenticationOption, McpCredentials

logger = get_logger(__name__)


class CredentialsProvider(Protocol):
    async def get_auth_headers(self, authentication: McpAuthenticationOption) -> dict[str, str]: ...

    async def refresh(
        self,
        authentication: McpAuthenticationOption,
        headers: dict[str, str],
    ) -> dict[str, str] | None: ...


def _default_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=ENV.oauth2_refresh_timeout_sec)


class StoredCredentialsProvider:
    """Builds MCP request headers from credentials stored with the node.

    Only OAuth2 credentials can be refreshed; ``refresh`` returns ``None`` for
    every other mode so the connector fails instead of retrying with the same
    headers.
    """

    def __init__(
        self,
        credentials: McpCredentials | None = None,
        http_client_factory: Callable[[], httpx.AsyncClient] = _default_http_client,
    ) -> None:
        self.credentials = credentials or McpCredentials()
        self._http_client_factory = http_client_factory

    async def get_auth_headers(self, authentication: McpAuthenticationOption) -> dict[str, str]:
        creds = self.credentials
        if authentication == McpAuthenticationOption.NONE:
            return {}

        if authentication == McpAuthenticationOption.HEADER_AUTH:
            if not creds.header_name or creds.header_value is None:
                logger.warning("Header auth selected but no header name/value is stored")
                return {}
            return {creds.header_name: creds.header_value}

        if authentication == McpAuthenticationOption.BEARER_AUTH:
            if not creds.bearer_token:
                logger.warning("Bearer auth selected but no token is stored")
                return {}
            return {"Authorization": f"Bearer {creds.bearer_token}"}

        if authentication == McpAuthenticationOption.OAUTH2:
            if not creds.access_token:
                logger.warning("OAuth2 selected but no access token is stored")
                return {}
            return {"Authorization": f"{creds.token_type} {creds.access_token}"}

        raise ValueError(f"Unsupported MCP authentication option: {authentication!r}")

    async def refresh(
        self,
        authentication: McpAuthenticationOption,
        headers: dict[str, str],
    ) -> dict[str, str] | None:
        if authentication != McpAuthenticationOption.OAUTH2:
            return None

        creds = self.credentials
        if not creds.refresh_token or not creds.token_url:
            logger.warning("OAuth2 token cannot be refreshed: refresh token or token URL missing")
            return None

        payload: dict[str, Any] = {
            "grant_type": "refresh_token",
            "refresh_token": creds.refresh_token,
        }
        if creds.client_id:
            payload["client_id"] = creds.client_id
        if creds.client_secret:
            payload["client_secret"] = creds.client_secret

        logger.info(f"Refreshing OAuth2 access token from {creds.token_url}")
        async with self._http_client_factory() as client:
            try:
                # Token endpoints expect application/x-www-form-urlencoded
                response = await client.post(creds.token_url, data=payload)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as exc:
                logger.error(f"OAuth2 refresh failed: {exc.response.status_code} - {exc.response.text}")
                return None
            except (httpx.HTTPError, ValueError) as exc:
                logger.error(f"OAuth2 refresh failed: {exc}")
                return None

        access_token = data.get("access_token")
        if not access_token:
            logger.error("OAuth2 refresh response is missing access_token")
            return None

        self.credentials = creds.model_copy(
            update={
                "access_token": access_token,
                "refresh_token": data.get("refresh_token") or creds.refresh_token,
                "token_type": data.get("token_type") or creds.token_type,
            }
        )
        refreshed = dict(headers)
        refreshed["Authorization"] = f"{self.credentials.token_type} {access_token}"
        return refreshed
