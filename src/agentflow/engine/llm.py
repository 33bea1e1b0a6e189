"""LLM-directed composition driven by ``call_tool`` directives."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from agentflow.agent.spec import LLMAgent, RunResult
from agentflow.core.directive import ToolCall, Unparseable, parse_directive
from agentflow.core.types import Message
from agentflow.errors import ToolExecutionError, ToolNotFoundError
from agentflow.llm.prompt import render_input
from agentflow.llm.structured import parse_structured_output
from agentflow.observability.context import InvocationContext

if TYPE_CHECKING:
    from agentflow.engine.engine import Engine

logger = logging.getLogger(__name__)


async def run_llm(
    engine: "Engine",
    agent: LLMAgent,
    value: Any,
    invocation: InvocationContext,
) -> RunResult:
    """Ask the provider, then either execute its tool directive or return its answer.

    With ``max_tool_turns == 1`` the first tool result is the run output.
    Larger values feed each tool result back to the provider until it
    answers without a directive or the turn budget is spent. Final answers
    of agents with an ``output_schema`` are validated into model instances.
    """
    memory = engine.memory
    session_id = invocation.session_id
    provider = engine.provider_for(agent)

    history = memory.conversation(session_id) if agent.include_history else []
    messages = engine.prompts.build(
        user_input=value,
        system_prompt=agent.system_prompt,
        history=history,
        tools=engine.tools.definitions(agent.tools) if agent.tools else (),
        output_schema=agent.output_schema,
    )
    memory.add_message(
        session_id,
        author="user",
        content=render_input(value),
        invocation_id=invocation.invocation_id,
    )

    turns = 0
    while True:
        reply = await engine.generate(provider, messages, agent.options, invocation)
        memory.add_message(
            session_id, author="model", content=reply, invocation_id=invocation.invocation_id
        )

        directive = parse_directive(reply)
        if not isinstance(directive, ToolCall):
            if isinstance(directive, Unparseable):
                logger.info("Treating malformed directive from %s as answer: %s", agent.name, directive.reason)
            if agent.output_schema is None:
                return RunResult(output=directive.text, status="completed")
            structured = parse_structured_output(
                directive.text, agent.output_schema, agent_name=agent.name
            )
            return RunResult(output=structured, status="completed")

        if agent.tools and directive.name not in agent.tools:
            raise ToolExecutionError(directive.name, ToolNotFoundError(directive.name))
        try:
            result = await engine.call_tool(directive.name, directive.args, invocation)
        except ToolNotFoundError as exc:
            raise ToolExecutionError(directive.name, exc) from exc

        turns += 1
        if turns >= agent.max_tool_turns:
            return RunResult(output=result, status="tool_call_completed")

        messages = [
            *messages,
            Message(role="assistant", content=reply),
            Message(role="user", content=f"Tool {directive.name} returned: {render_input(result)}"),
        ]


__all__ = ["run_llm"]
