"""Core record types and the LLM directive parser."""

from __future__ import annotations

from agentflow.core.directive import (
    Directive,
    FinalAnswer,
    ToolCall,
    Unparseable,
    format_tool_call,
    parse_directive,
)
from agentflow.core.types import Event, Message, ToolDefinition

__all__ = [
    "Directive",
    "Event",
    "FinalAnswer",
    "Message",
    "ToolCall",
    "ToolDefinition",
    "Unparseable",
    "format_tool_call",
    "parse_directive",
]
