"""Thread-safe registry mapping tool names to tool capabilities."""

from __future__ import annotations

import logging
import threading
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from agentflow.core.callables import call_maybe_async
from agentflow.core.types import ToolDefinition
from agentflow.errors import AgentFlowError, DuplicateToolError, ToolExecutionError, ToolNotFoundError
from agentflow.tools.base import FunctionTool, Tool, ToolContext

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registry of tools shared by every agent of a runtime.

    Lookups read an immutable snapshot without locking; registration swaps
    in a new snapshot under a lock.
    """

    def __init__(self, tools: Optional[Iterable[Union[Tool, Callable[..., Any]]]] = None) -> None:
        self._lock = threading.RLock()
        self._tools: Mapping[str, Tool] = MappingProxyType({})
        for item in tools or ():
            self.register(item)

    def register(self, item: Union[Tool, Callable[..., Any]], *, replace: bool = False) -> Tool:
        """Register a tool (plain functions are wrapped in :class:`FunctionTool`)."""
        tool = item if isinstance(item, Tool) else FunctionTool(item)
        if not tool.name:
            raise ValueError("Tool name must be a non-empty string")
        with self._lock:
            if tool.name in self._tools and not replace:
                raise DuplicateToolError(f"Tool '{tool.name}' is already registered")
            updated = dict(self._tools)
            updated[tool.name] = tool
            self._tools = MappingProxyType(updated)
        logger.debug("Registered tool %s", tool.name)
        return tool

    def unregister(self, name: str) -> bool:
        with self._lock:
            if name not in self._tools:
                return False
            updated = dict(self._tools)
            updated.pop(name)
            self._tools = MappingProxyType(updated)
        logger.debug("Unregistered tool %s", name)
        return True

    def lookup(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def get(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def list(self) -> list[str]:
        return sorted(self._tools)

    def definitions(self, names: Optional[Iterable[str]] = None) -> list[ToolDefinition]:
        tools = self._tools
        selected = sorted(tools) if names is None else [name for name in names if name in tools]
        return [tools[name].definition() for name in selected]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def invoke(self, tool: Tool, params: Mapping[str, Any], context: ToolContext) -> Any:
        """Execute ``tool``; any failure is raised as :class:`ToolExecutionError`."""
        try:
            return await call_maybe_async(tool.execute, dict(params), context)
        except ToolExecutionError:
            raise
        except Exception as exc:
            if not isinstance(exc, AgentFlowError):
                logger.warning("Tool %s raised %s: %s", tool.name, type(exc).__name__, exc)
            raise ToolExecutionError(tool.name, exc) from exc

    async def execute(self, name: str, params: Mapping[str, Any], context: ToolContext) -> Any:
        """Resolve ``name`` and invoke it; a missing tool fails like a failed call."""
        tool = self.lookup(name)
        if tool is None:
            raise ToolExecutionError(name, ToolNotFoundError(name))
        return await self.invoke(tool, params, context)


__all__ = ["ToolRegistry"]
