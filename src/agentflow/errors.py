"""Structured error taxonomy for the agent execution engine."""

from __future__ import annotations

from typing import Any, Optional


class AgentFlowError(Exception):
    """Base class for every error surfaced by the engine."""

    code = "agentflow_error"

    def to_dict(self) -> dict[str, Any]:
        """Return a structured ``{"error": code, ...}`` representation."""
        return {"error": self.code, "message": str(self)}


class InvalidConfigError(AgentFlowError, ValueError):
    """Raised when an agent or step definition fails construction-time validation."""

    code = "invalid_config"

    def __init__(self, reason: str, *, field: Optional[str] = None) -> None:
        self.reason = reason
        self.field = field
        super().__init__(reason if field is None else f"{field}: {reason}")

    def to_dict(self) -> dict[str, Any]:
        payload = {"error": self.code, "reason": self.reason}
        if self.field is not None:
            payload["field"] = self.field
        return payload


class StepExecutionError(AgentFlowError):
    """Wraps any failure raised while executing a single step."""

    code = "step_execution_error"

    def __init__(
        self,
        kind: str,
        identifier: Optional[str],
        cause: Any,
        *,
        index: Optional[int] = None,
        agent_name: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.identifier = identifier
        self.cause = cause
        self.index = index
        self.agent_name = agent_name
        super().__init__(self._render())

    def _render(self) -> str:
        target = self.identifier or "<anonymous>"
        location = f" at step {self.index}" if self.index is not None else ""
        return f"{self.kind} step {target!r}{location} failed: {self.cause!r}"

    def at(self, index: int, agent_name: Optional[str] = None) -> "StepExecutionError":
        """Tag the error with the position of the failing step."""
        self.index = index
        if agent_name is not None and self.agent_name is None:
            self.agent_name = agent_name
        self.args = (self._render(),)
        return self

    def to_dict(self) -> dict[str, Any]:
        cause = self.cause
        return {
            "error": self.code,
            "kind": self.kind,
            "identifier": self.identifier,
            "index": self.index,
            "agent": self.agent_name,
            "cause": cause.to_dict() if isinstance(cause, AgentFlowError) else repr(cause),
        }


class ToolNotFoundError(AgentFlowError, LookupError):
    """Raised when a tool name cannot be resolved in the registry."""

    code = "tool_not_found"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' is not registered")

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "name": self.name}


class DuplicateToolError(AgentFlowError, ValueError):
    """Raised when registering a tool name twice without ``replace=True``."""

    code = "duplicate_tool"


class ToolError(AgentFlowError):
    """Semantic failure reported by a tool implementation."""

    code = "tool_error"


class ToolExecutionError(AgentFlowError):
    """Raised when a tool invocation fails or the tool cannot be resolved."""

    code = "tool_execution_failed"

    def __init__(self, tool_name: str, cause: BaseException) -> None:
        self.tool_name = tool_name
        self.cause = cause
        super().__init__(f"Tool '{tool_name}' failed: {cause}")

    def to_dict(self) -> dict[str, Any]:
        cause = self.cause
        return {
            "error": self.code,
            "tool": self.tool_name,
            "cause": cause.to_dict() if isinstance(cause, AgentFlowError) else repr(cause),
        }


class ProviderError(AgentFlowError):
    """Failure reported by an LLM provider; surfaced to callers unwrapped."""

    code = "provider_error"

    def __init__(self, message: str, *, provider: Optional[str] = None) -> None:
        self.provider = provider
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "provider": self.provider, "message": str(self)}


class OutputValidationError(AgentFlowError):
    """Raised when a final LLM answer does not satisfy the agent's output schema."""

    code = "output_validation_failed"

    def __init__(
        self,
        agent_name: str,
        schema_name: str,
        content: str,
        *,
        reason: str,
        errors: Optional[list[Any]] = None,
    ) -> None:
        self.agent_name = agent_name
        self.schema_name = schema_name
        self.content = content
        self.reason = reason
        self.errors = errors or []
        super().__init__(f"Agent '{agent_name}' output failed {schema_name} validation: {reason}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "agent": self.agent_name,
            "schema": self.schema_name,
            "reason": self.reason,
            "errors": self.errors,
        }


class AgentExecutionError(AgentFlowError):
    """Wraps an unexpected failure surfaced through the agent process boundary."""

    code = "agent_execution_error"

    def __init__(self, agent_name: str, cause: BaseException) -> None:
        self.agent_name = agent_name
        self.cause = cause
        super().__init__(f"Agent '{agent_name}' failed: {cause!r}")

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "agent": self.agent_name, "cause": repr(self.cause)}


class RunTimeoutError(AgentFlowError, TimeoutError):
    """Raised when a run does not complete within the caller-supplied timeout."""

    code = "timeout"

    def __init__(self, agent_name: str, timeout_ms: int) -> None:
        self.agent_name = agent_name
        self.timeout_ms = timeout_ms
        super().__init__(f"Agent '{agent_name}' timed out after {timeout_ms}ms")

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "agent": self.agent_name, "timeout_ms": self.timeout_ms}


class AgentStoppedError(AgentFlowError, RuntimeError):
    """Raised when a run is submitted to a process that is not accepting work."""

    code = "agent_stopped"


__all__ = [
    "AgentExecutionError",
    "AgentFlowError",
    "AgentStoppedError",
    "DuplicateToolError",
    "InvalidConfigError",
    "OutputValidationError",
    "ProviderError",
    "RunTimeoutError",
    "StepExecutionError",
    "ToolError",
    "ToolExecutionError",
    "ToolNotFoundError",
]
