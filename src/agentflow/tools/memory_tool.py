"""Tool giving agents read/write access to their session memory."""

from __future__ import annotations

import re
from typing import Any, Mapping

from agentflow.core.types import Event, ToolDefinition
from agentflow.errors import ToolError
from agentflow.memory.facade import SessionMemory
from agentflow.tools.base import Tool, ToolContext

_ACTIONS = ("save", "search", "get", "clear")


class MemoryTool(Tool):
    """Save, search, list and clear entries of a session's history.

    ``session_id`` defaults to the calling agent's session.
    """

    name = "memory_tool"
    description = "Store and retrieve information from session memory"

    def __init__(self, memory: SessionMemory) -> None:
        self.memory = memory

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameter_schema={
                "type": "object",
                "properties": {
                    "action": {"type": "string", "enum": list(_ACTIONS)},
                    "session_id": {"type": "string"},
                    "data": {
                        "description": "save: data to store; search: query term or sub-map",
                    },
                    "regex": {"type": "boolean", "default": False},
                },
                "required": ["action"],
            },
        )

    def execute(self, params: Mapping[str, Any], context: ToolContext) -> str:
        action = params.get("action")
        session_id = params.get("session_id") or context.session_id
        if action not in _ACTIONS:
            raise ToolError(
                f"Invalid parameters: {dict(params)!r}. Expected action in {', '.join(_ACTIONS)}."
            )

        if action == "save":
            if "data" not in params:
                raise ToolError("The save action requires 'data'")
            self.memory.add_message(
                session_id,
                author="custom",
                content=params["data"],
                invocation_id=context.invocation_id,
                metadata={"source": self.name},
            )
            return f"Data saved to memory for session {session_id}"

        if action == "search":
            query = params.get("data")
            if query is None:
                raise ToolError("The search action requires 'data'")
            if params.get("regex") and isinstance(query, str):
                query = re.compile(query)
            if not isinstance(query, (str, re.Pattern, Mapping)):
                raise ToolError(f"Unsupported search query: {query!r}")
            results = self.memory.search(session_id, query)
            return (
                f"Found {len(results)} results for session {session_id}:\n"
                f"{_format_events(results)}"
            )

        if action == "get":
            events = self.memory.get_history(session_id)
            return (
                f"Retrieved {len(events)} memory entries for session {session_id}:\n"
                f"{_format_events(events)}"
            )

        self.memory.clear(session_id)
        return f"Memory cleared for session {session_id}"


def _format_events(events: list[Event]) -> str:
    lines = []
    for index, event in enumerate(events, start=1):
        content = event.content
        if isinstance(content, Mapping):
            rendered = ", ".join(f"{key}: {value!r}" for key, value in content.items())
        elif isinstance(content, str):
            rendered = content
        else:
            rendered = repr(content)
        lines.append(f"{index}. {rendered}")
    return "\n".join(lines)


__all__ = ["MemoryTool"]
