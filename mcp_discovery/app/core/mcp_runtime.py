from importlib import metadata


def _safe_version(package_name: str) -> str:
    try:
        return metadata.version(package_name)
    except metadata.PackageNotFoundError:
        return "not-installed"


CLIENT_VERSION = _safe_version("mcp-tool-discovery")

MCP_RUNTIME_INFO = {
    "implementation": "mcp.client",
    "package": "mcp",
    "version": _safe_version("mcp"),
}
