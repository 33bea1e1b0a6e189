"""Parser turning free-form LLM replies into typed directives.

The only recognised instruction is ``call_tool("<name>", {<json-args>})``
embedded anywhere in the reply. Everything else is a final answer. Text that
contains the call marker but does not form a valid call yields
:class:`Unparseable`, which callers treat as a final answer.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Union

_CALL_MARKER = re.compile(r"call_tool\s*\(")
_NAME = re.compile(r'\s*"([^"\\]+)"\s*,\s*')
_DECODER = json.JSONDecoder()


@dataclass(frozen=True, slots=True)
class ToolCall:
    """Request to invoke a registered tool."""

    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class FinalAnswer:
    """Reply text to return to the caller as-is."""

    text: str


@dataclass(frozen=True, slots=True)
class Unparseable:
    """Reply that mentions ``call_tool`` without a well-formed call."""

    text: str
    reason: str


Directive = Union[ToolCall, FinalAnswer, Unparseable]


def _parse_call_at(text: str, start: int) -> ToolCall | str:
    """Parse a call whose argument list begins at ``start``; return a reason on failure."""
    name_match = _NAME.match(text, start)
    if name_match is None:
        return "expected a quoted tool name followed by a comma"
    name = name_match.group(1).strip()
    if not name:
        return "tool name is empty"

    try:
        args, end = _DECODER.raw_decode(text, name_match.end())
    except json.JSONDecodeError as exc:
        return f"arguments are not valid JSON: {exc.msg}"
    if not isinstance(args, dict):
        return "arguments must be a JSON object"

    rest = text[end:].lstrip()
    if not rest.startswith(")"):
        return "missing closing parenthesis"
    return ToolCall(name=name, args=args)


def parse_directive(text: str) -> Directive:
    """Parse ``text`` into a :data:`Directive`.

    The first well-formed call wins. Never raises for string input.
    """
    reason = ""
    for marker in _CALL_MARKER.finditer(text):
        outcome = _parse_call_at(text, marker.end())
        if isinstance(outcome, ToolCall):
            return outcome
        reason = outcome
    if reason:
        return Unparseable(text=text, reason=reason)
    return FinalAnswer(text=text)


def format_tool_call(name: str, args: dict[str, Any]) -> str:
    """Render a directive in the textual form the parser understands."""
    return f'call_tool("{name}", {json.dumps(args, sort_keys=True)})'


__all__ = [
    "Directive",
    "FinalAnswer",
    "ToolCall",
    "Unparseable",
    "format_tool_call",
    "parse_directive",
]
