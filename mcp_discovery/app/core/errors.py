class DiscoveryError(Exception):
    """Base class for failures of a tool discovery call."""


class ConnectionFailure(DiscoveryError):
    """The MCP session could not be established, even after the credential refresh."""

    def __init__(self, endpoint_url: str, reason: str = "") -> None:
        self.endpoint_url = endpoint_url
        self.reason = reason
        message = f"Could not connect to MCP server at '{endpoint_url}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class FetchFailure(DiscoveryError):
    """Listing tools failed on an otherwise live session."""


class ConfigurationIncomplete(DiscoveryError):
    """A required connection parameter (e.g. the endpoint) is not configured."""

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        super().__init__(f"Missing required MCP connection parameter: {field_name}")
