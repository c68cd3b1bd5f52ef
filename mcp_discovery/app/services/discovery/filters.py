from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from mcp.types import Tool as MCPTool

from mcp_discovery.app.core.logger import get_logger

logger = get_logger(__name__)


class ToolIncludeMode(str, Enum):
    ALL = "all"
    SELECTED = "selected"
    EXCEPT = "except"


@dataclass(frozen=True)
class ToolFilter:
    mode: ToolIncludeMode = ToolIncludeMode.ALL
    names: frozenset[str] = frozenset()

    @classmethod
    def all(cls) -> "ToolFilter":
        return cls()

    @classmethod
    def selected(cls, names: Iterable[str]) -> "ToolFilter":
        return cls(ToolIncludeMode.SELECTED, frozenset(names))

    @classmethod
    def excluding(cls, names: Iterable[str]) -> "ToolFilter":
        return cls(ToolIncludeMode.EXCEPT, frozenset(names))

    @classmethod
    def from_parameters(
        cls,
        include: str | None,
        include_tools: Iterable[str] | None = None,
        exclude_tools: Iterable[str] | None = None,
    ) -> "ToolFilter":
        mode = (include or ToolIncludeMode.ALL.value).strip()
        if mode == ToolIncludeMode.SELECTED.value:
            return cls.selected(include_tools or [])
        if mode == ToolIncludeMode.EXCEPT.value:
            return cls.excluding(exclude_tools or [])
        if mode != ToolIncludeMode.ALL.value:
            logger.warning(f"Unknown tool include mode '{mode}', including all tools")
        return cls.all()


def filter_tools(tools: Sequence[MCPTool], policy: ToolFilter) -> list[MCPTool]:
    # An empty selection means "no restriction", same as an empty exclusion.
    if policy.mode == ToolIncludeMode.SELECTED and policy.names:
        return [tool for tool in tools if tool.name in policy.names]
    if policy.mode == ToolIncludeMode.EXCEPT:
        return [tool for tool in tools if tool.name not in policy.names]
    return list(tools)
