"""Execution of a single step against an input and session memory."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional

from agentflow.agent.spec import (
    AgentStep,
    FunctionStep,
    Step,
    StepResult,
    ToolStep,
    TransformStep,
)
from agentflow.core.callables import call_maybe_async
from agentflow.errors import StepExecutionError, ToolExecutionError, ToolNotFoundError
from agentflow.observability.context import InvocationContext
from agentflow.observability.tracing import trace_span

if TYPE_CHECKING:
    from agentflow.engine.engine import Engine

logger = logging.getLogger(__name__)


def split_result(result: Any) -> tuple[Any, Optional[Mapping[str, Any]]]:
    """Separate a step's output from the state updates it requested.

    ``StepResult`` and 2-tuples whose second item is a mapping carry
    updates; anything else is a bare output.
    """
    if isinstance(result, StepResult):
        return result.output, result.state_updates
    if isinstance(result, tuple) and len(result) == 2 and isinstance(result[1], Mapping):
        return result[0], result[1]
    return result, None


class StepInterpreter:
    """Executes one :data:`Step`, converting every failure into a ``StepExecutionError``."""

    def __init__(self, engine: "Engine") -> None:
        self.engine = engine

    async def execute(self, step: Step, value: Any, invocation: InvocationContext) -> Any:
        kind = getattr(step, "kind", type(step).__name__)
        identifier = getattr(step, "identifier", None)
        with trace_span(
            "agentflow.step",
            {
                "agentflow.agent": invocation.agent_name,
                "agentflow.session": invocation.session_id,
                "agentflow.step.kind": kind,
                "agentflow.step.id": identifier,
            },
        ):
            if isinstance(step, FunctionStep):
                return await self._call(step, value, invocation, with_memory=step.wants_memory)
            if isinstance(step, TransformStep):
                return await self._call(step, value, invocation, with_memory=True)
            if isinstance(step, ToolStep):
                return await self._tool(step, invocation)
            if isinstance(step, AgentStep):
                return await self._delegate(step, value, invocation)
            raise StepExecutionError("unknown", type(step).__name__, "unsupported step type")

    async def _call(
        self,
        step: FunctionStep | TransformStep,
        value: Any,
        invocation: InvocationContext,
        *,
        with_memory: bool,
    ) -> Any:
        memory = self.engine.memory
        args = (value, memory.get_full_state(invocation.session_id)) if with_memory else (value,)
        try:
            result = await call_maybe_async(step.function, *args)
        except Exception as exc:
            logger.debug("%s step %s raised %r", step.kind, step.identifier, exc)
            raise StepExecutionError(step.kind, step.identifier, exc) from exc

        # A returned exception is a failure, same as a raised one.
        if isinstance(result, BaseException):
            raise StepExecutionError(step.kind, step.identifier, result)

        output, updates = split_result(result)
        if updates is not None and not isinstance(updates, Mapping):
            raise StepExecutionError(
                step.kind,
                step.identifier,
                TypeError(f"state updates must be a mapping, got {type(updates).__name__}"),
            )
        if updates:
            try:
                memory.merge_state(invocation.session_id, updates)
            except Exception as exc:
                raise StepExecutionError(step.kind, step.identifier, exc) from exc
        return output

    async def _tool(self, step: ToolStep, invocation: InvocationContext) -> Any:
        try:
            return await self.engine.call_tool(step.tool_name, step.params, invocation)
        except ToolNotFoundError as exc:
            raise StepExecutionError("tool", step.tool_name, exc) from exc
        except ToolExecutionError as exc:
            raise StepExecutionError("tool", step.tool_name, exc.cause) from exc

    async def _delegate(self, step: AgentStep, value: Any, invocation: InvocationContext) -> Any:
        child = invocation.for_agent(step.agent.name, step.agent.session_id)
        try:
            result = await self.engine.run_agent(step.agent, value, child)
        except Exception as exc:
            raise StepExecutionError("agent", step.identifier, exc) from exc
        return result.output


__all__ = ["StepInterpreter", "split_result"]
