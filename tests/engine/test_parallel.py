from __future__ import annotations

import asyncio
import time
from typing import Any

import pytest

from agentflow.agent import FunctionStep, ParallelAgent, StepResult, TransformStep
from agentflow.engine import Engine, combine
from agentflow.errors import StepExecutionError
from agentflow.memory import SessionMemory
from agentflow.observability import InvocationContext
from agentflow.settings import AgentFlowSettings


def _engine(memory: SessionMemory | None = None) -> Engine:
    return Engine(memory=memory, settings=AgentFlowSettings())


def _invocation(agent: ParallelAgent) -> InvocationContext:
    return InvocationContext(session_id="s1", agent_name=agent.name)


@pytest.mark.asyncio
async def test_every_task_fills_its_slot() -> None:
    engine = _engine()
    agent = ParallelAgent(
        name="fan-out",
        tasks=[
            FunctionStep(lambda value: value + 1),
            FunctionStep(lambda value: value * 10),
            FunctionStep(lambda value: str(value)),
        ],
    )

    result = await engine.run_agent(agent, 4, _invocation(agent))

    assert result.output == {0: 5, 1: 40, 2: "4"}
    assert result.combined == "5\n40\n4"
    assert result.to_dict() == {"output": {0: 5, 1: 40, 2: "4"}, "combined": "5\n40\n4"}


@pytest.mark.asyncio
async def test_empty_task_list() -> None:
    engine = _engine()
    agent = ParallelAgent(name="nothing")

    result = await engine.run_agent(agent, "x", _invocation(agent))

    assert result.output == {}
    assert result.combined == ""


@pytest.mark.asyncio
async def test_failed_task_does_not_affect_siblings() -> None:
    engine = _engine()

    def _boom(value: Any) -> Any:
        raise RuntimeError("task failed")

    agent = ParallelAgent(
        name="mixed",
        tasks=[FunctionStep(lambda value: "ok"), FunctionStep(_boom), FunctionStep(lambda value: "also ok")],
    )

    result = await engine.run_agent(agent, None, _invocation(agent))

    assert result.output[0] == "ok"
    assert result.output[2] == "also ok"
    failure = result.output[1]
    assert isinstance(failure, StepExecutionError)
    assert failure.index == 1
    assert failure.agent_name == "mixed"
    assert isinstance(failure.cause, RuntimeError)


@pytest.mark.asyncio
async def test_bad_state_updates_fail_only_their_task() -> None:
    engine = _engine()
    agent = ParallelAgent(
        name="bad-updates",
        tasks=[
            FunctionStep(lambda value: StepResult("bad", state_updates=5)),
            FunctionStep(lambda value: value + 1),
        ],
    )

    result = await engine.run_agent(agent, 1, _invocation(agent))

    failure = result.output[0]
    assert isinstance(failure, StepExecutionError)
    assert failure.index == 0
    assert isinstance(failure.cause, TypeError)
    assert result.output[1] == 2


@pytest.mark.asyncio
async def test_tasks_run_concurrently() -> None:
    engine = _engine()

    async def _async_wait(value: Any) -> str:
        await asyncio.sleep(0.2)
        return "async"

    def _blocking_wait(value: Any) -> str:
        time.sleep(0.2)
        return "sync"

    agent = ParallelAgent(
        name="concurrent",
        tasks=[FunctionStep(_async_wait), FunctionStep(_blocking_wait), FunctionStep(_async_wait)],
    )

    started = time.perf_counter()
    result = await engine.run_agent(agent, None, _invocation(agent))
    elapsed = time.perf_counter() - started

    assert result.output == {0: "async", 1: "sync", 2: "async"}
    assert elapsed < 0.5


@pytest.mark.asyncio
async def test_tasks_see_the_same_input_and_merge_updates() -> None:
    memory = SessionMemory()
    engine = _engine(memory=memory)

    def _left(value: str, state: dict[str, Any]) -> StepResult:
        return StepResult(output=f"left:{value}", state_updates={"left": True})

    def _right(value: str, state: dict[str, Any]) -> StepResult:
        return StepResult(output=f"right:{value}", state_updates={"right": True})

    agent = ParallelAgent(name="split", tasks=[TransformStep(_left), TransformStep(_right)])

    result = await engine.run_agent(agent, "in", _invocation(agent))

    assert result.output == {0: "left:in", 1: "right:in"}
    assert memory.get_full_state("s1") == {"left": True, "right": True}


def test_combine_orders_by_index() -> None:
    assert combine({2: "c", 0: "a", 1: "b"}) == "a\nb\nc"
    assert combine({}) == ""
