"""ToolRegistry — name-to-tool map backing ``tools/list`` and ``tools/call``."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from mcp_rca.tools.base import Tool


class ToolRegistry:
    """Maintains the name-to-tool map for a server.

    Populated once while the server is built and read-only afterwards.

    Usage::

        registry = ToolRegistry()
        registry.register(PrioritizeTool())

        registry.describe()            # tools/list payload
        tool = registry.get("test_prioritize")
    """

    def __init__(self, tools: Iterable[Tool] | None = None) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools or ():
            self.register(tool)

    def register(self, tool: Tool) -> None:
        """Add *tool*; a later registration under the same name replaces the earlier one."""
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        """Return the tool registered as *name*, or ``None``."""
        return self._tools.get(name)

    def list(self) -> list[Tool]:
        """Return a snapshot of the registered tools in registration order."""
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    def describe(self) -> list[dict[str, Any]]:
        """Return the ``tools/list`` descriptors in registration order."""
        return [tool.describe().to_wire() for tool in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self.list())
