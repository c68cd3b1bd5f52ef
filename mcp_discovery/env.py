import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _resolve_env_file() -> Path | None:
    current_dir = Path(__file__).resolve().parent
    candidates = [
        current_dir / ".env",
        current_dir.parent / ".env",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _split_csv(raw_value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw_value.split(",") if item.strip())


@dataclass(frozen=True)
class DiscoveryEnv:
    env_file: Path | None
    log_level: str
    mcp_client_name: str
    mcp_http_timeout_sec: float
    mcp_sse_read_timeout_sec: float
    oauth2_refresh_timeout_sec: float
    api_host: str
    api_port: int
    cors_allow_origins: tuple[str, ...]


def load_discovery_env() -> DiscoveryEnv:
    env_file = _resolve_env_file()
    if env_file is not None:
        load_dotenv(env_file, override=False)

    return DiscoveryEnv(
        env_file=env_file,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        mcp_client_name=os.getenv("MCP_CLIENT_NAME", "mcp-tool-discovery").strip() or "mcp-tool-discovery",
        mcp_http_timeout_sec=float(os.getenv("MCP_HTTP_TIMEOUT_SEC", "30").strip()),
        mcp_sse_read_timeout_sec=float(os.getenv("MCP_SSE_READ_TIMEOUT_SEC", "300").strip()),
        oauth2_refresh_timeout_sec=float(os.getenv("OAUTH2_REFRESH_TIMEOUT_SEC", "10").strip()),
        api_host=os.getenv("API_HOST", "0.0.0.0").strip(),
        api_port=int(os.getenv("API_PORT", "8091").strip()),
        cors_allow_origins=_split_csv(os.getenv("CORS_ALLOW_ORIGINS", "*")) or ("*",),
    )


ENV = load_discovery_env()
