from dataclasses import dataclass
from typing import Any, Sequence

from mcp.types import Tool as MCPTool

from mcp_discovery.app.schemas.discovery import LoadOption


REQUIRED_MARKER = " ⭐"


@dataclass(frozen=True)
class SchemaParameter:
    name: str
    required: bool
    description: str | None = None


def schema_parameters(schema: Any) -> list[SchemaParameter]:
    """Top-level properties of an object schema, in declaration order.

    Schemas that are not ``type: object`` or have no ``properties`` yield
    nothing. Property fragments that are not objects (boolean schemas) carry
    no description.
    """
    if not isinstance(schema, dict) or schema.get("type") != "object":
        return []
    properties = schema.get("properties")
    if not isinstance(properties, dict) or not properties:
        return []

    required = schema.get("required")
    required_names = {name for name in required if isinstance(name, str)} if isinstance(required, list) else set()

    parameters: list[SchemaParameter] = []
    for name, fragment in properties.items():
        description = fragment.get("description") if isinstance(fragment, dict) else None
        parameters.append(
            SchemaParameter(
                name=name,
                required=name in required_names,
                description=description if isinstance(description, str) and description else None,
            )
        )
    return parameters


def find_tool(tools: Sequence[MCPTool], tool_name: str) -> MCPTool | None:
    return next((tool for tool in tools if tool.name == tool_name), None)


def flatten_tool_parameters(tool: MCPTool | None) -> list[LoadOption]:
    if tool is None or not tool.inputSchema:
        return []

    return [
        LoadOption(
            name=f"{param.name}{REQUIRED_MARKER if param.required else ''}",
            value=param.name,
            description=param.description or f"Parameter: {param.name}",
        )
        for param in schema_parameters(tool.inputSchema)
    ]


def flatten_parameters(tools: Sequence[MCPTool]) -> list[LoadOption]:
    """Parameters of every tool, addressed as ``<tool>.<parameter>``.

    Callers pass the already filtered catalog.
    """
    options: list[LoadOption] = []
    for tool in tools:
        for param in schema_parameters(tool.inputSchema):
            options.append(
                LoadOption(
                    name=f"{tool.name} → {param.name}{REQUIRED_MARKER if param.required else ''}",
                    value=f"{tool.name}.{param.name}",
                    description=param.description or f"Parameter {param.name} of tool {tool.name}",
                )
            )
    return options
