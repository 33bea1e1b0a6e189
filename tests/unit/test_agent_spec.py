from __future__ import annotations

from typing import Any

import pytest

from agentflow.agent import (
    AgentStep,
    FunctionStep,
    LLMAgent,
    LoopAgent,
    ParallelAgent,
    SequentialAgent,
    ToolStep,
    TransformStep,
    agent_from_config,
    build_step,
    create_agent,
)
from agentflow.errors import InvalidConfigError
from agentflow.settings import AgentFlowSettings


def _double(value: int) -> int:
    return value * 2


def _with_state(value: Any, state: dict[str, Any]) -> Any:
    return value


def _never(output: Any, iteration: int, state: dict[str, Any]) -> bool:
    return False


def test_build_step_from_mappings() -> None:
    leaf = SequentialAgent(name="leaf")

    assert isinstance(build_step({"type": "function", "function": _double}), FunctionStep)
    tool_step = build_step({"type": "tool", "tool": "weather", "params": {"city": "Oslo"}})
    assert isinstance(tool_step, ToolStep)
    assert tool_step.params == {"city": "Oslo"}
    assert isinstance(build_step({"type": "transform", "function": _with_state}), TransformStep)
    agent_step = build_step({"type": "agent", "agent": leaf})
    assert isinstance(agent_step, AgentStep)
    assert agent_step.identifier == "leaf"


def test_tool_step_params_are_read_only() -> None:
    step = ToolStep(tool_name="weather", params={"city": "Oslo"})

    with pytest.raises(TypeError):
        step.params["city"] = "Paris"  # type: ignore[index]


@pytest.mark.parametrize(
    ("config", "field"),
    [
        ({"function": _double}, "type"),
        ({"type": "shell", "cmd": "ls"}, "type"),
        ({"type": "function"}, "function"),
        ({"type": "tool"}, "tool"),
        ({"type": "agent"}, "agent"),
        ({"type": "tool", "tool": ""}, "tool_name"),
    ],
)
def test_build_step_rejects_malformed_config(config: dict[str, Any], field: str) -> None:
    with pytest.raises(InvalidConfigError) as excinfo:
        build_step(config)

    assert excinfo.value.field == field


def test_transform_requires_two_arguments() -> None:
    with pytest.raises(InvalidConfigError):
        TransformStep(function=_double)


def test_function_step_arity_controls_memory() -> None:
    assert FunctionStep(function=_double).wants_memory is False
    assert FunctionStep(function=_with_state).wants_memory is True


def test_sequential_reports_failing_step_path() -> None:
    with pytest.raises(InvalidConfigError) as excinfo:
        SequentialAgent(name="pipeline", steps=[{"type": "function", "function": _double}, {"type": "nope"}])

    assert excinfo.value.field == "steps[1].type"


def test_agent_name_is_required() -> None:
    with pytest.raises(InvalidConfigError) as excinfo:
        SequentialAgent(name="  ")

    assert excinfo.value.to_dict() == {
        "error": "invalid_config",
        "reason": "must be a non-empty string",
        "field": "name",
    }


def test_loop_validation() -> None:
    with pytest.raises(InvalidConfigError):
        LoopAgent(name="loop", condition=lambda output: True)
    with pytest.raises(InvalidConfigError):
        LoopAgent(name="loop", condition=_never, max_iterations=-1)
    with pytest.raises(InvalidConfigError):
        LoopAgent(name="loop", condition=_never, max_iterations=True)

    loop = LoopAgent(name="loop", condition=_never, max_iterations=0)
    assert loop.max_iterations == 0


def test_llm_agent_validation() -> None:
    with pytest.raises(InvalidConfigError):
        LLMAgent(name="chat", provider=object())  # type: ignore[arg-type]
    with pytest.raises(InvalidConfigError):
        LLMAgent(name="chat", tools="weather")
    with pytest.raises(InvalidConfigError):
        LLMAgent(name="chat", max_tool_turns=0)
    with pytest.raises(InvalidConfigError, match="output_schema"):
        LLMAgent(name="chat", output_schema=dict)  # type: ignore[arg-type]

    agent = LLMAgent(name="chat", tools=["weather"])
    assert agent.tools == ("weather",)


def test_create_agent_applies_settings_defaults() -> None:
    settings = AgentFlowSettings(LOOP_MAX_ITERATIONS=3, MAX_TOOL_TURNS=2)

    loop = create_agent("loop", {"name": "loop", "condition": _never}, settings=settings)
    llm = create_agent("llm", name="chat", settings=settings)

    assert isinstance(loop, LoopAgent)
    assert loop.max_iterations == 3
    assert isinstance(llm, LLMAgent)
    assert llm.max_tool_turns == 2


def test_create_agent_rejects_unknown_and_missing_fields() -> None:
    with pytest.raises(InvalidConfigError) as unknown:
        create_agent("sequential", {"name": "seq", "stepz": []})
    assert unknown.value.field == "stepz"

    with pytest.raises(InvalidConfigError) as missing:
        create_agent("loop", {"name": "loop"})
    assert missing.value.field == "condition"

    with pytest.raises(InvalidConfigError) as kind:
        create_agent("swarm", {"name": "x"})
    assert kind.value.field == "kind"


def test_agent_from_config_reads_type() -> None:
    agent = agent_from_config(
        {"type": "parallel", "name": "fan", "tasks": [{"type": "function", "function": _double}]}
    )

    assert isinstance(agent, ParallelAgent)
    assert len(agent.tasks) == 1

    with pytest.raises(InvalidConfigError):
        agent_from_config({"name": "untyped"})
