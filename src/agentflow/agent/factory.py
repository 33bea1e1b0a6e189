"""Factory helpers for building agent definitions from configuration records."""

from __future__ import annotations

import dataclasses
from typing import Any, Mapping, Optional

from agentflow.agent.spec import (
    AgentDefinition,
    AgentKind,
    LLMAgent,
    LoopAgent,
    ParallelAgent,
    SequentialAgent,
)
from agentflow.errors import InvalidConfigError
from agentflow.settings import AgentFlowSettings, get_settings

AGENT_TYPES: Mapping[str, type[AgentDefinition]] = {
    "sequential": SequentialAgent,
    "parallel": ParallelAgent,
    "loop": LoopAgent,
    "llm": LLMAgent,
}


def create_agent(
    kind: AgentKind | str,
    config: Optional[Mapping[str, Any]] = None,
    *,
    settings: Optional[AgentFlowSettings] = None,
    **fields: Any,
) -> AgentDefinition:
    """Validate a configuration record and build the matching definition.

    Missing required fields, unknown fields and malformed values raise
    :class:`InvalidConfigError`. Loop and LLM bounds left unset fall back to
    ``AGENTFLOW_LOOP_MAX_ITERATIONS`` and ``AGENTFLOW_MAX_TOOL_TURNS``.
    """
    agent_type = AGENT_TYPES.get(kind)
    if agent_type is None:
        raise InvalidConfigError(f"unknown agent kind {kind!r}", field="kind")

    data: dict[str, Any] = dict(config or {})
    data.update(fields)
    data.pop("type", None)
    data.pop("kind", None)

    resolved = settings or get_settings()
    if agent_type is LoopAgent:
        data.setdefault("max_iterations", resolved.LOOP_MAX_ITERATIONS)
    if agent_type is LLMAgent:
        data.setdefault("max_tool_turns", resolved.MAX_TOOL_TURNS)

    known = {f.name: f for f in dataclasses.fields(agent_type)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise InvalidConfigError(f"unknown field(s) for {kind} agent", field=", ".join(unknown))
    for name, spec_field in known.items():
        required = (
            spec_field.default is dataclasses.MISSING
            and spec_field.default_factory is dataclasses.MISSING
        )
        if required and name not in data:
            raise InvalidConfigError("missing required field", field=name)

    return agent_type(**data)


def agent_from_config(
    config: Mapping[str, Any], *, settings: Optional[AgentFlowSettings] = None
) -> AgentDefinition:
    """Build a definition from a record carrying its kind under ``type`` or ``kind``."""
    kind = config.get("type", config.get("kind"))
    if kind is None:
        raise InvalidConfigError("missing required field", field="type")
    return create_agent(kind, config, settings=settings)


__all__ = ["AGENT_TYPES", "agent_from_config", "create_agent"]
