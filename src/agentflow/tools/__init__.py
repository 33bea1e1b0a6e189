"""Tool contract, registry and built-in tools."""

from __future__ import annotations

from agentflow.tools.base import FunctionTool, Tool, ToolContext, tool
from agentflow.tools.memory_tool import MemoryTool
from agentflow.tools.registry import ToolRegistry

__all__ = ["FunctionTool", "MemoryTool", "Tool", "ToolContext", "ToolRegistry", "tool"]
