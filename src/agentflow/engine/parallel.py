"""Parallel composition: independent tasks over the same input."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from agentflow.agent.spec import ParallelAgent, RunResult, Step
from agentflow.errors import StepExecutionError
from agentflow.observability.context import InvocationContext

if TYPE_CHECKING:
    from agentflow.engine.engine import Engine

logger = logging.getLogger(__name__)

COMBINED_SEPARATOR = "\n"


def combine(results: dict[int, Any]) -> str:
    """Stringify slot values in index order."""
    return COMBINED_SEPARATOR.join(str(results[index]) for index in sorted(results))


async def run_parallel(
    engine: "Engine",
    agent: ParallelAgent,
    value: Any,
    invocation: InvocationContext,
) -> RunResult:
    """Run every task concurrently; failed tasks leave their error in their slot.

    Cancelling the caller cancels every outstanding task.
    """

    async def _task(index: int, step: Step) -> Any:
        try:
            return await engine.interpreter.execute(step, value, invocation)
        except StepExecutionError as exc:
            logger.info("Parallel task %d of %s failed: %s", index, agent.name, exc)
            return exc.at(index, agent.name)

    outcomes = await asyncio.gather(*(_task(i, step) for i, step in enumerate(agent.tasks)))
    results = dict(enumerate(outcomes))
    return RunResult(output=results, combined=combine(results))


__all__ = ["COMBINED_SEPARATOR", "combine", "run_parallel"]
