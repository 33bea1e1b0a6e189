"""Message list construction for LLM agents."""

from __future__ import annotations

import json
from typing import Any, Optional, Sequence

from pydantic import BaseModel

from agentflow.core.types import Message, ToolDefinition
from agentflow.llm.structured import json_output_instructions

TOOL_INSTRUCTIONS = (
    "To use a tool, reply with exactly one line of the form "
    'call_tool("<tool name>", {<JSON arguments>}). '
    "When no tool is needed, reply with the final answer only."
)


def render_input(value: Any) -> str:
    """Render an arbitrary run input as message text."""
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, sort_keys=True, default=str)
    except (TypeError, ValueError):
        return repr(value)


class PromptBuilder:
    """Build ``[system?, *history, user]`` message lists.

    When tools are available their definitions and the ``call_tool``
    convention are appended to the system prompt, followed by JSON output
    instructions when an output schema is given.
    """

    def __init__(self, tool_instructions: str = TOOL_INSTRUCTIONS) -> None:
        self.tool_instructions = tool_instructions

    def system_message(
        self,
        system_prompt: Optional[str],
        tools: Sequence[ToolDefinition],
        output_schema: Optional[type[BaseModel]] = None,
    ) -> Optional[Message]:
        sections = [system_prompt] if system_prompt else []
        if tools:
            lines = ["Available tools:"]
            for definition in tools:
                schema = json.dumps(definition.parameter_schema, sort_keys=True)
                if definition.description:
                    lines.append(f"- {definition.name}: {definition.description}")
                else:
                    lines.append(f"- {definition.name}")
                lines.append(f"  parameters: {schema}")
            sections.append("\n".join(lines))
            sections.append(self.tool_instructions)
        if output_schema is not None:
            sections.append(json_output_instructions(output_schema))
        if not sections:
            return None
        return Message(role="system", content="\n\n".join(sections))

    def build(
        self,
        *,
        user_input: Any,
        system_prompt: Optional[str] = None,
        history: Sequence[Message] = (),
        tools: Sequence[ToolDefinition] = (),
        output_schema: Optional[type[BaseModel]] = None,
    ) -> list[Message]:
        messages: list[Message] = []
        system = self.system_message(system_prompt, tools, output_schema)
        if system is not None:
            messages.append(system)
        messages.extend(history)
        messages.append(Message(role="user", content=render_input(user_input)))
        return messages


__all__ = ["PromptBuilder", "TOOL_INSTRUCTIONS", "render_input"]
