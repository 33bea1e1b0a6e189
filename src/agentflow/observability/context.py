"""Context helpers exposing the invocation currently being executed."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import Iterator, Optional


def new_invocation_id() -> str:
    return f"inv-{uuid.uuid4().hex[:16]}"


@dataclass(frozen=True, slots=True)
class InvocationContext:
    """Identity of one run: its session, invocation and owning agent."""

    session_id: str
    agent_name: str
    invocation_id: str = field(default_factory=new_invocation_id)

    def for_agent(self, agent_name: str, session_id: Optional[str] = None) -> "InvocationContext":
        """Derive the context for a sub-agent sharing this invocation id."""
        return InvocationContext(
            session_id=session_id or self.session_id,
            agent_name=agent_name,
            invocation_id=self.invocation_id,
        )


_CURRENT_INVOCATION: ContextVar[InvocationContext | None] = ContextVar(
    "agentflow_current_invocation",
    default=None,
)


def get_current_invocation() -> Optional[InvocationContext]:
    """Return the invocation bound to the current context, if any."""
    return _CURRENT_INVOCATION.get()


@contextmanager
def use_invocation(invocation: InvocationContext | None) -> Iterator[None]:
    """Bind an invocation to the current context for the duration of the block."""
    token: Token[InvocationContext | None] | None = None
    if invocation is not None:
        token = _CURRENT_INVOCATION.set(invocation)
    try:
        yield
    finally:
        if token is not None:
            _CURRENT_INVOCATION.reset(token)


__all__ = ["InvocationContext", "get_current_invocation", "new_invocation_id", "use_invocation"]
