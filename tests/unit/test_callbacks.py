from __future__ import annotations

from typing import Any, Mapping

import pytest

from agentflow.callbacks import CALLBACK_EVENTS, CallbackRegistry, Halt


def test_known_events() -> None:
    assert CALLBACK_EVENTS == {
        "before_run",
        "after_run",
        "on_error",
        "before_tool_call",
        "after_tool_call",
        "before_llm_call",
        "after_llm_call",
    }


def test_register_validates_event() -> None:
    registry = CallbackRegistry()

    with pytest.raises(ValueError):
        registry.register("on_boot", lambda value, ctx: value)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        registry.register("before_run", "not callable")  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_chain_transforms_value_in_order() -> None:
    registry = CallbackRegistry()
    registry.register("before_run", lambda value, ctx: value + 1)
    registry.register("before_run", lambda value, ctx: None)
    registry.register("before_run", lambda value, ctx: value * 10)

    result = await registry.run("before_run", 1, {})

    assert result.value == 20
    assert result.halted is False


@pytest.mark.asyncio
async def test_halt_stops_chain() -> None:
    registry = CallbackRegistry()
    seen: list[Any] = []
    registry.register("before_tool_call", lambda value, ctx: Halt("cached"))
    registry.register("before_tool_call", lambda value, ctx: seen.append(value))

    result = await registry.run("before_tool_call", {"q": 1}, {})

    assert result.value == "cached"
    assert result.halted is True
    assert seen == []


@pytest.mark.asyncio
async def test_async_callbacks_are_awaited() -> None:
    registry = CallbackRegistry()

    async def _upper(value: str, ctx: Mapping[str, Any]) -> str:
        return value.upper()

    registry.register("after_llm_call", _upper)

    result = await registry.run("after_llm_call", "hello", {})

    assert result.value == "HELLO"


@pytest.mark.asyncio
async def test_failing_callback_is_skipped(caplog: pytest.LogCaptureFixture) -> None:
    registry = CallbackRegistry()

    def _broken(value: Any, ctx: Mapping[str, Any]) -> Any:
        raise RuntimeError("broken hook")

    registry.register("after_run", _broken)
    registry.register("after_run", lambda value, ctx: f"{value}!")

    with caplog.at_level("ERROR"):
        result = await registry.run("after_run", "done", {})

    assert result.value == "done!"
    assert "failed" in caplog.text


@pytest.mark.asyncio
async def test_filters_match_context() -> None:
    registry = CallbackRegistry()
    registry.register("before_run", lambda value, ctx: "filtered", filter={"agent_name": "a"})

    assert (await registry.run("before_run", "x", {"agent_name": "a"})).value == "filtered"
    assert (await registry.run("before_run", "x", {"agent_name": "b"})).value == "x"


def test_unregister_and_clear() -> None:
    registry = CallbackRegistry()
    callback_id = registry.register("on_error", lambda value, ctx: None)
    registry.register("on_error", lambda value, ctx: None)

    assert registry.count("on_error") == 2
    assert registry.unregister(callback_id) is True
    assert registry.unregister(callback_id) is False
    assert registry.count("on_error") == 1

    registry.clear()
    assert registry.count("on_error") == 0
