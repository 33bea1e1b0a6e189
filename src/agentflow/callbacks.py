"""Lifecycle hooks around runs, tool calls and LLM calls."""

from __future__ import annotations

import inspect
import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Mapping, Optional, get_args

logger = logging.getLogger(__name__)

CallbackEvent = Literal[
    "before_run",
    "after_run",
    "on_error",
    "before_tool_call",
    "after_tool_call",
    "before_llm_call",
    "after_llm_call",
]
CALLBACK_EVENTS: frozenset[str] = frozenset(get_args(CallbackEvent))

Callback = Callable[[Any, Mapping[str, Any]], Any]


@dataclass(frozen=True, slots=True)
class Halt:
    """Returned by a callback to stop the chain with ``value``."""

    value: Any


@dataclass(slots=True)
class CallbackResult:
    value: Any
    halted: bool = False


@dataclass(frozen=True, slots=True)
class _Registration:
    id: str
    event: str
    fn: Callback
    filter: Mapping[str, Any] = field(default_factory=dict)

    def applies_to(self, context: Mapping[str, Any]) -> bool:
        return all(context.get(key) == value for key, value in self.filter.items())


class CallbackRegistry:
    """Ordered callback chains keyed by lifecycle event.

    A callback receives ``(value, context)`` and returns a replacement value,
    ``None`` to keep the current value, or :class:`Halt` to stop the chain.
    Callbacks may be coroutine functions. A callback that raises is logged
    and skipped.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._chains: dict[str, list[_Registration]] = {}

    def register(
        self,
        event: CallbackEvent,
        fn: Callback,
        *,
        filter: Optional[Mapping[str, Any]] = None,
    ) -> str:
        if event not in CALLBACK_EVENTS:
            raise ValueError(f"Unknown callback event '{event}'")
        if not callable(fn):
            raise TypeError("Callback must be callable")
        registration = _Registration(
            id=uuid.uuid4().hex, event=event, fn=fn, filter=dict(filter or {})
        )
        with self._lock:
            self._chains.setdefault(event, []).append(registration)
        return registration.id

    def unregister(self, callback_id: str) -> bool:
        with self._lock:
            for chain in self._chains.values():
                for registration in chain:
                    if registration.id == callback_id:
                        chain.remove(registration)
                        return True
        return False

    def count(self, event: CallbackEvent) -> int:
        with self._lock:
            return len(self._chains.get(event, []))

    def clear(self) -> None:
        with self._lock:
            self._chains.clear()

    async def run(
        self, event: CallbackEvent, value: Any, context: Mapping[str, Any]
    ) -> CallbackResult:
        with self._lock:
            chain = list(self._chains.get(event, []))

        for registration in chain:
            if not registration.applies_to(context):
                continue
            try:
                outcome = registration.fn(value, context)
                if inspect.isawaitable(outcome):
                    outcome = await outcome
            except Exception:
                logger.exception("Callback %s for %s failed", registration.id, event)
                continue
            if isinstance(outcome, Halt):
                return CallbackResult(value=outcome.value, halted=True)
            if outcome is not None:
                value = outcome
        return CallbackResult(value=value)


__all__ = ["CALLBACK_EVENTS", "Callback", "CallbackEvent", "CallbackRegistry", "CallbackResult", "Halt"]
