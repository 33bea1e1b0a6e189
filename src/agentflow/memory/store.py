"""Session storage backends for state maps and event history."""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Protocol, Union

from agentflow.core.types import Event

SearchQuery = Union[str, "re.Pattern[str]", Mapping[str, Any]]
StateMutator = Callable[[dict[str, Any]], Any]


class MemoryStore(Protocol):
    """Pluggable backend contract consumed by :class:`SessionMemory`.

    Implementations must tolerate concurrent access from many agents and
    guarantee sequential consistency per session.
    """

    def get_state(self, session_id: str, key: str, default: Any = None) -> Any: ...

    def get_full_state(self, session_id: str) -> dict[str, Any]: ...

    def update_state(self, session_id: str, key: str, value: Any) -> None: ...

    def mutate_state(self, session_id: str, mutator: StateMutator) -> Any: ...

    def append_event(self, event: Event) -> None: ...

    def get_events(self, session_id: str) -> list[Event]: ...

    def search(self, session_id: str, query: SearchQuery) -> list[Event]: ...

    def clear(self, session_id: str) -> None: ...

    def list_sessions(self) -> list[str]: ...


def _text_values(content: Any) -> Iterable[str]:
    if isinstance(content, str):
        yield content
    elif isinstance(content, Mapping):
        for value in content.values():
            if isinstance(value, str):
                yield value


def event_matches(event: Event, query: SearchQuery) -> bool:
    """Return True when ``event`` satisfies a substring, regex or sub-map query."""
    content = event.content
    if isinstance(query, str):
        return any(query in text for text in _text_values(content))
    if isinstance(query, re.Pattern):
        return any(query.search(text) for text in _text_values(content))
    if isinstance(query, Mapping):
        if not isinstance(content, Mapping):
            return False
        return all(key in content and content[key] == value for key, value in query.items())
    raise TypeError(f"Unsupported search query type: {type(query).__name__}")


@dataclass
class _Session:
    state: dict[str, Any] = field(default_factory=dict)
    events: list[Event] = field(default_factory=list)
    lock: threading.RLock = field(default_factory=threading.RLock)


class InMemoryStore:
    """Process-local backend with one lock per session.

    Sessions are created lazily on first write. The registry lock only
    guards session creation and removal; reads and writes of a session only
    hold that session's lock.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, _Session] = {}
        self._guard = threading.RLock()

    def _session(self, session_id: str) -> _Session:
        session = self._sessions.get(session_id)
        if session is not None:
            return session
        with self._guard:
            session = self._sessions.get(session_id)
            if session is None:
                session = _Session()
                self._sessions[session_id] = session
            return session

    def get_state(self, session_id: str, key: str, default: Any = None) -> Any:
        session = self._sessions.get(session_id)
        if session is None:
            return default
        with session.lock:
            return session.state.get(key, default)

    def get_full_state(self, session_id: str) -> dict[str, Any]:
        session = self._sessions.get(session_id)
        if session is None:
            return {}
        with session.lock:
            return dict(session.state)

    def update_state(self, session_id: str, key: str, value: Any) -> None:
        session = self._session(session_id)
        with session.lock:
            session.state[key] = value

    def mutate_state(self, session_id: str, mutator: StateMutator) -> Any:
        """Apply ``mutator`` to the live state map while holding the session lock."""
        session = self._session(session_id)
        with session.lock:
            return mutator(session.state)

    def append_event(self, event: Event) -> None:
        session = self._session(event.session_id)
        with session.lock:
            session.events.append(event)

    def get_events(self, session_id: str) -> list[Event]:
        session = self._sessions.get(session_id)
        if session is None:
            return []
        with session.lock:
            return list(session.events)

    def search(self, session_id: str, query: SearchQuery) -> list[Event]:
        return [event for event in self.get_events(session_id) if event_matches(event, query)]

    def clear(self, session_id: str) -> None:
        with self._guard:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            with session.lock:
                session.state.clear()
                session.events.clear()

    def list_sessions(self) -> list[str]:
        with self._guard:
            return sorted(self._sessions)


__all__ = ["InMemoryStore", "MemoryStore", "SearchQuery", "StateMutator", "event_matches"]
