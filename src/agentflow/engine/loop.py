"""Loop composition: repeat a step body while a condition holds."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from agentflow.agent.spec import LoopAgent, RunResult, RunStatus
from agentflow.core.callables import call_maybe_async
from agentflow.engine.sequential import run_steps
from agentflow.errors import StepExecutionError
from agentflow.observability.context import InvocationContext

if TYPE_CHECKING:
    from agentflow.engine.engine import Engine

logger = logging.getLogger(__name__)


async def run_loop(
    engine: "Engine",
    agent: LoopAgent,
    value: Any,
    invocation: InvocationContext,
) -> RunResult:
    """Run the body until the condition is falsy or ``max_iterations`` is reached.

    The bound is checked before the condition, and the condition is checked
    before every iteration including the first.
    """
    output = value
    iteration = 0
    status: RunStatus
    while True:
        if iteration >= agent.max_iterations:
            status = "max_iterations_reached"
            break

        memory_state = engine.memory.get_full_state(invocation.session_id)
        try:
            keep_going = await call_maybe_async(agent.condition, output, iteration, memory_state)
        except Exception as exc:
            raise StepExecutionError("condition", agent.name, exc) from exc
        if not keep_going:
            status = "completed"
            break

        output = await run_steps(engine, agent.steps, output, invocation)
        iteration += 1

    logger.debug("Loop %s finished after %d iterations (%s)", agent.name, iteration, status)
    return RunResult(output=output, iterations=iteration, status=status)


__all__ = ["run_loop"]
