"""Domain-level memory operations layered over a :class:`MemoryStore`."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from agentflow.core.types import Event, Message
from agentflow.memory.store import InMemoryStore, MemoryStore, SearchQuery

logger = logging.getLogger(__name__)


class SessionMemory:
    """Facade the engine uses to read and write session memory.

    Counters, message history and search are expressed here in terms of the
    store primitives so any backend honouring :class:`MemoryStore` can be
    swapped in.
    """

    def __init__(self, store: Optional[MemoryStore] = None) -> None:
        self.store: MemoryStore = store if store is not None else InMemoryStore()

    def get_state(self, session_id: str, key: str, default: Any = None) -> Any:
        return self.store.get_state(session_id, key, default)

    def get_full_state(self, session_id: str) -> dict[str, Any]:
        return self.store.get_full_state(session_id)

    def update_state(self, session_id: str, key: str, value: Any) -> None:
        self.store.update_state(session_id, key, value)

    def merge_state(self, session_id: str, updates: Mapping[str, Any]) -> dict[str, Any]:
        """Shallow-merge ``updates`` into the state map and return the merged copy."""
        if not updates:
            return self.store.get_full_state(session_id)

        def _merge(state: dict[str, Any]) -> dict[str, Any]:
            state.update(updates)
            return dict(state)

        return self.store.mutate_state(session_id, _merge)

    def increment(self, session_id: str, key: str, by: int = 1) -> int:
        """Atomically add ``by`` to a numeric state entry (missing counts as 0)."""

        def _bump(state: dict[str, Any]) -> int:
            value = int(state.get(key, 0)) + by
            state[key] = value
            return value

        return self.store.mutate_state(session_id, _bump)

    def add_message(
        self,
        session_id: str,
        *,
        author: str,
        content: Any = None,
        invocation_id: Optional[str] = None,
        tool_calls: Optional[list[dict[str, Any]]] = None,
        tool_results: Optional[list[dict[str, Any]]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Event:
        event = Event.new(
            session_id=session_id,
            author=author,
            content=content,
            invocation_id=invocation_id,
            tool_calls=tool_calls,
            tool_results=tool_results,
            metadata=metadata,
        )
        self.store.append_event(event)
        return event

    def get_history(self, session_id: str) -> list[Event]:
        """Return the session's events in the order they were appended."""
        return self.store.get_events(session_id)

    def conversation(self, session_id: str) -> list[Message]:
        """Project the history onto role/content pairs suitable for an LLM."""
        messages: list[Message] = []
        for event in self.store.get_events(session_id):
            if event.author == "user":
                messages.append(Message(role="user", content=_as_text(event.content)))
            elif event.author == "model":
                messages.append(Message(role="assistant", content=_as_text(event.content)))
            elif event.author == "tool":
                for result in event.tool_results:
                    rendered = f"Tool {result.get('name')} returned: {_as_text(result.get('content'))}"
                    messages.append(Message(role="assistant", content=rendered))
        return messages

    def search(self, session_id: str, query: SearchQuery) -> list[Event]:
        return self.store.search(session_id, query)

    def clear(self, session_id: str) -> None:
        logger.debug("Clearing session %s", session_id)
        self.store.clear(session_id)

    def list_sessions(self) -> list[str]:
        return self.store.list_sessions()

    def view(self, session_id: str) -> "SessionView":
        return SessionView(session_id=session_id, memory=self)


@dataclass(frozen=True, slots=True)
class SessionView:
    """Handle on one session passed through a run."""

    session_id: str
    memory: SessionMemory

    def state(self) -> dict[str, Any]:
        """Snapshot of the state map; mutating it does not touch the store."""
        return self.memory.get_full_state(self.session_id)

    def get(self, key: str, default: Any = None) -> Any:
        return self.memory.get_state(self.session_id, key, default)

    def merge(self, updates: Mapping[str, Any]) -> dict[str, Any]:
        return self.memory.merge_state(self.session_id, updates)

    def history(self) -> list[Event]:
        return self.memory.get_history(self.session_id)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return repr(value)


__all__ = ["SessionMemory", "SessionView"]
