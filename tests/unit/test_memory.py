from __future__ import annotations

import re
import threading

import pytest
from pydantic import ValidationError

from agentflow.core.types import Event, Message
from agentflow.memory import InMemoryStore, SessionMemory


def test_state_is_isolated_per_session(memory: SessionMemory) -> None:
    memory.update_state("a", "counter", 1)
    memory.update_state("b", "counter", 5)

    assert memory.get_state("a", "counter") == 1
    assert memory.get_state("b", "counter") == 5
    assert memory.get_state("c", "counter", 0) == 0


def test_reads_do_not_create_sessions(memory: SessionMemory) -> None:
    assert memory.get_full_state("ghost") == {}
    assert memory.get_history("ghost") == []

    assert memory.list_sessions() == []


def test_full_state_is_a_snapshot(memory: SessionMemory) -> None:
    memory.update_state("s", "k", "v")

    snapshot = memory.get_full_state("s")
    snapshot["k"] = "changed"

    assert memory.get_state("s", "k") == "v"


def test_merge_state_is_shallow(memory: SessionMemory) -> None:
    memory.update_state("s", "a", 1)

    merged = memory.merge_state("s", {"b": 2})

    assert merged == {"a": 1, "b": 2}
    assert memory.get_full_state("s") == {"a": 1, "b": 2}


def test_increment_is_atomic_across_threads(memory: SessionMemory) -> None:
    def _bump() -> None:
        for _ in range(200):
            memory.increment("shared", "hits")

    threads = [threading.Thread(target=_bump) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert memory.get_state("shared", "hits") == 1600


def test_history_preserves_append_order(memory: SessionMemory) -> None:
    first = memory.add_message("s", author="user", content="hi")
    second = memory.add_message("s", author="model", content="hello")

    history = memory.get_history("s")

    assert [event.id for event in history] == [first.id, second.id]
    assert all(event.session_id == "s" for event in history)


def test_event_author_is_any_non_empty_string() -> None:
    event = Event.new(session_id="s", author="auditor", content="ok")

    assert event.author == "auditor"
    with pytest.raises(ValidationError):
        Event.new(session_id="s", author="")


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ("weather", ["weather in Paris", {"topic": "weather report"}]),
        (re.compile(r"^Paris"), ["Paris is sunny"]),
        ({"topic": "weather report"}, [{"topic": "weather report"}]),
    ],
)
def test_search_queries(memory: SessionMemory, query: object, expected: list[object]) -> None:
    for content in ("weather in Paris", "Paris is sunny", {"topic": "weather report"}, 42):
        memory.add_message("s", author="custom", content=content)

    results = memory.search("s", query)  # type: ignore[arg-type]

    assert [event.content for event in results] == expected


def test_search_rejects_unknown_query_type(memory: SessionMemory) -> None:
    memory.add_message("s", author="custom", content="x")

    with pytest.raises(TypeError):
        memory.search("s", 42)  # type: ignore[arg-type]


def test_clear_removes_state_and_events(memory: SessionMemory) -> None:
    memory.update_state("s", "k", 1)
    memory.add_message("s", author="user", content="hi")
    memory.update_state("other", "k", 2)

    memory.clear("s")

    assert memory.get_full_state("s") == {}
    assert memory.get_history("s") == []
    assert memory.list_sessions() == ["other"]


def test_conversation_projects_roles(memory: SessionMemory) -> None:
    memory.add_message("s", author="user", content="What's the weather?")
    memory.add_message("s", author="model", content='call_tool("weather", {})')
    memory.add_message(
        "s",
        author="tool",
        tool_calls=[{"name": "weather", "arguments": {}}],
        tool_results=[{"name": "weather", "status": "ok", "content": "sunny"}],
    )
    memory.add_message("s", author="agent", content="sunny")

    assert memory.conversation("s") == [
        Message(role="user", content="What's the weather?"),
        Message(role="assistant", content='call_tool("weather", {})'),
        Message(role="assistant", content="Tool weather returned: sunny"),
    ]


def test_session_view_reads_and_merges() -> None:
    memory = SessionMemory(InMemoryStore())
    view = memory.view("s")

    view.merge({"x": 1})
    memory.add_message("s", author="user", content="hi")

    assert view.get("x") == 1
    assert view.state() == {"x": 1}
    assert len(view.history()) == 1
