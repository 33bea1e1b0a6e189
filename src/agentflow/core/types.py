"""Core record types shared across the engine.

This module defines the immutable records exchanged between components:
- Event: One entry of a session's append-only history
- ToolDefinition: Public description of a tool capability
- Message: Role/content pair sent to an LLM provider
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant", "tool"]


def _new_event_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Event(BaseModel):
    """Immutable record of one interaction appended to a session history.

    Events are created through :meth:`Event.new` and never mutated afterwards.
    The ``author`` field accepts the well-known roles plus any custom string.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_event_id, description="Unique event identifier")
    timestamp: datetime = Field(default_factory=_utcnow, description="UTC creation time")
    session_id: str = Field(..., min_length=1, description="Owning session identifier")
    invocation_id: Optional[str] = Field(
        default=None, description="Run invocation that produced the event"
    )
    author: str = Field(..., min_length=1, description="user, model, tool, agent or custom")
    content: Any = Field(default=None, description="Message text or structured payload")
    tool_calls: list[dict[str, Any]] = Field(
        default_factory=list, description="Tool calls requested in this interaction"
    )
    tool_results: list[dict[str, Any]] = Field(
        default_factory=list, description="Tool results reported in this interaction"
    )
    metadata: dict[str, Any] = Field(default_factory=dict, description="Free-form annotations")

    @classmethod
    def new(
        cls,
        *,
        session_id: str,
        author: str,
        content: Any = None,
        invocation_id: Optional[str] = None,
        tool_calls: Optional[list[dict[str, Any]]] = None,
        tool_results: Optional[list[dict[str, Any]]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> "Event":
        """Create a new event; ``session_id`` and ``author`` are required."""
        return cls(
            session_id=session_id,
            author=author,
            content=content,
            invocation_id=invocation_id,
            tool_calls=list(tool_calls or []),
            tool_results=list(tool_results or []),
            metadata=dict(metadata or {}),
        )

    def text(self) -> Optional[str]:
        """Return the content when it is plain text."""
        return self.content if isinstance(self.content, str) else None


class ToolDefinition(BaseModel):
    """Public description of a tool exposed to agents and LLM prompts."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Registry key for the tool")
    description: str = Field(default="", description="Human readable summary")
    parameter_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON schema describing accepted parameters",
    )


class Message(BaseModel):
    """Single chat message passed to an LLM provider."""

    model_config = ConfigDict(frozen=True)

    role: Role = Field(..., description="Conversation role")
    content: str = Field(..., description="Message text")


__all__ = ["Event", "Message", "Role", "ToolDefinition"]
