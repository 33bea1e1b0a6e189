"""Sequential composition: each step's output feeds the next step."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Sequence

from agentflow.agent.spec import RunResult, SequentialAgent, Step
from agentflow.errors import StepExecutionError
from agentflow.observability.context import InvocationContext

if TYPE_CHECKING:
    from agentflow.engine.engine import Engine

logger = logging.getLogger(__name__)


async def run_steps(
    engine: "Engine",
    steps: Sequence[Step],
    value: Any,
    invocation: InvocationContext,
) -> Any:
    """Thread ``value`` through ``steps``; the first failure aborts the chain."""
    current = value
    for index, step in enumerate(steps):
        try:
            current = await engine.interpreter.execute(step, current, invocation)
        except StepExecutionError as exc:
            logger.warning(
                "Agent %s aborted at step %d (%s): %s",
                invocation.agent_name,
                index,
                exc.kind,
                exc.cause,
            )
            raise exc.at(index, invocation.agent_name)
    return current


async def run_sequential(
    engine: "Engine",
    agent: SequentialAgent,
    value: Any,
    invocation: InvocationContext,
) -> RunResult:
    output = await run_steps(engine, agent.steps, value, invocation)
    return RunResult(output=output)


__all__ = ["run_sequential", "run_steps"]
