"""Tool capability contract and function-backed tools."""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from agentflow.core.types import ToolDefinition
from agentflow.errors import ToolError

if TYPE_CHECKING:
    from agentflow.memory.facade import SessionMemory

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True, slots=True)
class ToolContext:
    """Invocation context handed to every tool execution."""

    session_id: str
    invocation_id: Optional[str] = None
    agent_name: Optional[str] = None
    memory: Optional["SessionMemory"] = None


class Tool(ABC):
    """Capability an agent can invoke by name.

    ``execute`` may be a regular or an ``async`` method. Failures are
    reported by raising; :class:`ToolError` marks an expected, semantic
    failure.
    """

    name: str = ""
    description: str = ""

    def definition(self) -> ToolDefinition:
        return ToolDefinition(name=self.name, description=self.description)

    @abstractmethod
    def execute(self, params: Mapping[str, Any], context: ToolContext) -> Any:
        """Run the tool with validated ``params``."""


def _resolved_signature(fn: Callable[..., Any]) -> inspect.Signature:
    try:
        return inspect.signature(fn, eval_str=True)
    except (NameError, TypeError, SyntaxError):
        return inspect.signature(fn)


def _params_model(name: str, fn: Callable[..., Any]) -> type[BaseModel]:
    fields: dict[str, Any] = {}
    for parameter in _resolved_signature(fn).parameters.values():
        if parameter.name == "context" or parameter.kind in (
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
        ):
            continue
        annotation = parameter.annotation
        # Unresolvable string annotations accept anything.
        if annotation is inspect.Parameter.empty or isinstance(annotation, str):
            annotation = Any
        default = ... if parameter.default is inspect.Parameter.empty else parameter.default
        fields[parameter.name] = (annotation, default)
    model_name = "".join(part.capitalize() for part in name.replace("-", "_").split("_")) + "Params"
    return create_model(model_name, __config__=ConfigDict(extra="forbid"), **fields)


class FunctionTool(Tool):
    """Tool backed by a plain (sync or async) function.

    The parameter schema is derived from the function signature and incoming
    params are validated against it before the function runs. A parameter
    named ``context`` receives the :class:`ToolContext`.
    """

    def __init__(
        self,
        fn: Callable[..., Any],
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        self.fn = fn
        self.name = name or fn.__name__
        doc = inspect.getdoc(fn) or ""
        self.description = description if description is not None else doc.split("\n", 1)[0]
        self._accepts_context = "context" in inspect.signature(fn).parameters
        self._params = _params_model(self.name, fn)

    def definition(self) -> ToolDefinition:
        schema = self._params.model_json_schema()
        schema.pop("title", None)
        return ToolDefinition(
            name=self.name, description=self.description, parameter_schema=schema
        )

    def execute(self, params: Mapping[str, Any], context: ToolContext) -> Any:
        try:
            validated = self._params.model_validate(dict(params))
        except ValidationError as exc:
            raise ToolError(f"Invalid parameters for tool '{self.name}': {exc}") from exc

        kwargs = {key: getattr(validated, key) for key in type(validated).model_fields}
        if self._accepts_context:
            kwargs["context"] = context
        return self.fn(**kwargs)


def tool(
    fn: Optional[F] = None,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Any:
    """Decorator turning a function into a :class:`FunctionTool`.

    Usage::

        @tool
        def weather(location: str) -> str: ...

        @tool(name="lookup", description="Find a record")
        async def lookup(key: str, context: ToolContext) -> dict: ...
    """

    def decorator(func: F) -> FunctionTool:
        return FunctionTool(func, name=name, description=description)

    if fn is not None:
        return decorator(fn)
    return decorator


__all__ = ["FunctionTool", "Tool", "ToolContext", "tool"]
