"""Session memory: pluggable stores and the facade used by the engine."""

from __future__ import annotations

from agentflow.memory.facade import SessionMemory, SessionView
from agentflow.memory.store import InMemoryStore, MemoryStore, SearchQuery, event_matches

__all__ = [
    "InMemoryStore",
    "MemoryStore",
    "SearchQuery",
    "SessionMemory",
    "SessionView",
    "event_matches",
]
