"""LLM provider contract and a scripted provider for tests and demos."""

from __future__ import annotations

import threading
from collections import deque
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol, Sequence, Union

from agentflow.core.types import Message

ScriptedReply = Union[str, BaseException]
ReplyFunction = Callable[[Sequence[Message], Mapping[str, Any]], str]


class LLMProvider(Protocol):
    """Text generation capability consumed by LLM agents.

    ``generate`` may be sync or async. Failures must be raised as
    :class:`agentflow.errors.ProviderError`.
    """

    def generate(self, messages: Sequence[Message], options: Mapping[str, Any]) -> Any: ...


def last_user_message(messages: Sequence[Message]) -> Optional[Message]:
    for message in reversed(messages):
        if message.role == "user":
            return message
    return None


class MockProvider:
    """Deterministic provider returning scripted replies.

    Replies are taken in order from ``responses``; an exception instance in
    the script is raised instead of returned. A callable computes the reply
    from the messages. Once the script is exhausted the provider echoes the
    last user message. ``options["mock_response"]`` overrides everything.
    """

    name = "mock"

    def __init__(
        self,
        responses: Union[Iterable[ScriptedReply], ReplyFunction, None] = None,
    ) -> None:
        self._reply_fn: Optional[ReplyFunction] = None
        self._script: deque[ScriptedReply] = deque()
        if callable(responses):
            self._reply_fn = responses
        elif responses is not None:
            self._script.extend(responses)
        self._lock = threading.Lock()
        self.calls: list[list[Message]] = []

    def generate(self, messages: Sequence[Message], options: Mapping[str, Any]) -> str:
        override = (options or {}).get("mock_response")
        with self._lock:
            self.calls.append(list(messages))
            if override is not None:
                return str(override)
            scripted = self._script.popleft() if self._script else None

        if isinstance(scripted, BaseException):
            raise scripted
        if scripted is not None:
            return scripted
        if self._reply_fn is not None:
            return self._reply_fn(messages, options)

        last = last_user_message(messages)
        if last is None:
            return "No user message found"
        return f"Mock response to: {last.content}"


__all__ = ["LLMProvider", "MockProvider", "last_user_message"]
