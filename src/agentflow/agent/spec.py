"""Agent and step definitions validated at construction time."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Literal, Mapping, Optional, Sequence, Union

from pydantic import BaseModel

from agentflow.core.callables import accepts_positional, positional_arity
from agentflow.errors import InvalidConfigError

if TYPE_CHECKING:
    from agentflow.llm.provider import LLMProvider

AgentKind = Literal["sequential", "parallel", "loop", "llm"]
StepKind = Literal["function", "tool", "transform", "agent"]
RunStatus = Literal["completed", "max_iterations_reached", "tool_call_completed"]

DEFAULT_LOOP_MAX_ITERATIONS = 10


def _require_name(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidConfigError("must be a non-empty string", field=field_name)
    return value


def _freeze_mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return MappingProxyType({})
    if not isinstance(value, Mapping):
        raise InvalidConfigError("must be a mapping", field=field_name)
    return MappingProxyType(dict(value))


@dataclass(frozen=True, slots=True, eq=False)
class FunctionStep:
    """Call ``function(input)`` or ``function(input, memory_state)``."""

    function: Callable[..., Any]
    name: Optional[str] = None
    kind: ClassVar[StepKind] = "function"

    def __post_init__(self) -> None:
        if not callable(self.function):
            raise InvalidConfigError("function step requires a callable", field="function")
        if not (accepts_positional(self.function, 1) or accepts_positional(self.function, 2)):
            raise InvalidConfigError(
                "function step callable must accept 1 or 2 positional arguments",
                field="function",
            )

    @property
    def identifier(self) -> str:
        return self.name or getattr(self.function, "__name__", "<anonymous>")

    @property
    def wants_memory(self) -> bool:
        return accepts_positional(self.function, 2)


@dataclass(frozen=True, slots=True, eq=False)
class ToolStep:
    """Invoke a registered tool with fixed ``params``."""

    tool_name: str
    params: Mapping[str, Any] = field(default_factory=dict)
    name: Optional[str] = None
    kind: ClassVar[StepKind] = "tool"

    def __post_init__(self) -> None:
        _require_name(self.tool_name, "tool_name")
        object.__setattr__(self, "params", _freeze_mapping(self.params, "params"))

    @property
    def identifier(self) -> str:
        return self.tool_name


@dataclass(frozen=True, slots=True, eq=False)
class TransformStep:
    """Call ``function(input, memory_state)``."""

    function: Callable[..., Any]
    name: Optional[str] = None
    kind: ClassVar[StepKind] = "transform"

    def __post_init__(self) -> None:
        if not callable(self.function):
            raise InvalidConfigError("transform step requires a callable", field="function")
        if not accepts_positional(self.function, 2):
            raise InvalidConfigError(
                "transform callable must accept (input, memory_state)", field="function"
            )

    @property
    def identifier(self) -> str:
        return self.name or getattr(self.function, "__name__", "<anonymous>")


@dataclass(frozen=True, slots=True, eq=False)
class AgentStep:
    """Delegate to another agent definition."""

    agent: "AgentDefinition"
    name: Optional[str] = None
    kind: ClassVar[StepKind] = "agent"

    def __post_init__(self) -> None:
        if not isinstance(self.agent, AgentDefinition):
            raise InvalidConfigError("agent step requires an AgentDefinition", field="agent")

    @property
    def identifier(self) -> str:
        return self.name or self.agent.name


Step = Union[FunctionStep, ToolStep, TransformStep, AgentStep]
STEP_TYPES: tuple[type, ...] = (FunctionStep, ToolStep, TransformStep, AgentStep)


def build_step(config: Union[Step, Mapping[str, Any]]) -> Step:
    """Build a step from its configuration record.

    Accepted forms: ``{"type": "function", "function": fn}``,
    ``{"type": "tool", "tool": name, "params": {...}}``,
    ``{"type": "transform", "function": fn}`` and
    ``{"type": "agent", "agent": definition}``. An optional ``name`` key
    labels the step in diagnostics.
    """
    if isinstance(config, STEP_TYPES):
        return config
    if not isinstance(config, Mapping):
        raise InvalidConfigError(f"step must be a mapping, got {type(config).__name__}")

    step_type = config.get("type")
    name = config.get("name")
    if step_type == "function":
        if "function" not in config:
            raise InvalidConfigError("missing required field", field="function")
        return FunctionStep(function=config["function"], name=name)
    if step_type == "tool":
        tool_name = config.get("tool", config.get("tool_name"))
        if tool_name is None:
            raise InvalidConfigError("missing required field", field="tool")
        return ToolStep(tool_name=tool_name, params=config.get("params") or {}, name=name)
    if step_type == "transform":
        if "function" not in config and "transform" not in config:
            raise InvalidConfigError("missing required field", field="function")
        return TransformStep(function=config.get("function", config.get("transform")), name=name)
    if step_type == "agent":
        if "agent" not in config:
            raise InvalidConfigError("missing required field", field="agent")
        return AgentStep(agent=config["agent"], name=name)
    if step_type is None:
        raise InvalidConfigError("missing required field", field="type")
    raise InvalidConfigError(f"unknown step type {step_type!r}", field="type")


def _build_steps(items: Any, field_name: str) -> tuple[Step, ...]:
    if items is None:
        return ()
    if isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Sequence):
        raise InvalidConfigError("must be a list of steps", field=field_name)
    steps = []
    for index, item in enumerate(items):
        try:
            steps.append(build_step(item))
        except InvalidConfigError as exc:
            raise InvalidConfigError(exc.reason, field=f"{field_name}[{index}].{exc.field or 'type'}") from exc
    return tuple(steps)


@dataclass(frozen=True, slots=True, eq=False, kw_only=True)
class AgentDefinition:
    """Immutable, named pipeline; subclasses select the composition policy."""

    name: str
    session_id: Optional[str] = None
    description: str = ""
    kind: ClassVar[AgentKind]

    def __post_init__(self) -> None:
        _require_name(self.name, "name")
        if self.session_id is not None:
            _require_name(self.session_id, "session_id")


@dataclass(frozen=True, slots=True, eq=False, kw_only=True)
class SequentialAgent(AgentDefinition):
    """Run steps in order, chaining each output into the next input."""

    steps: Sequence[Step] = ()
    kind: ClassVar[AgentKind] = "sequential"

    def __post_init__(self) -> None:
        AgentDefinition.__post_init__(self)
        object.__setattr__(self, "steps", _build_steps(self.steps, "steps"))


@dataclass(frozen=True, slots=True, eq=False, kw_only=True)
class ParallelAgent(AgentDefinition):
    """Run every task concurrently on the same input."""

    tasks: Sequence[Step] = ()
    kind: ClassVar[AgentKind] = "parallel"

    def __post_init__(self) -> None:
        AgentDefinition.__post_init__(self)
        object.__setattr__(self, "tasks", _build_steps(self.tasks, "tasks"))


@dataclass(frozen=True, slots=True, eq=False, kw_only=True)
class LoopAgent(AgentDefinition):
    """Repeat the step body while ``condition(output, iteration, memory_state)`` holds."""

    steps: Sequence[Step] = ()
    condition: Callable[[Any, int, dict[str, Any]], Any]
    max_iterations: int = DEFAULT_LOOP_MAX_ITERATIONS
    kind: ClassVar[AgentKind] = "loop"

    def __post_init__(self) -> None:
        AgentDefinition.__post_init__(self)
        object.__setattr__(self, "steps", _build_steps(self.steps, "steps"))
        if not callable(self.condition):
            raise InvalidConfigError("must be callable", field="condition")
        required, maximum = positional_arity(self.condition)
        if not required <= 3 <= maximum:
            raise InvalidConfigError(
                "must accept (output, iteration, memory_state)", field="condition"
            )
        if (
            isinstance(self.max_iterations, bool)
            or not isinstance(self.max_iterations, int)
            or self.max_iterations < 0
        ):
            raise InvalidConfigError("must be a non-negative integer", field="max_iterations")


@dataclass(frozen=True, slots=True, eq=False, kw_only=True)
class LLMAgent(AgentDefinition):
    """Ask an LLM provider and execute the tool directive it replies with.

    With ``output_schema`` set, a final answer must be a JSON object that
    validates against the model; the run output is the model instance.
    """

    provider: Optional["LLMProvider"] = None
    system_prompt: Optional[str] = None
    tools: Sequence[str] = ()
    include_history: bool = True
    max_tool_turns: int = 1
    options: Mapping[str, Any] = field(default_factory=dict)
    output_schema: Optional[type[BaseModel]] = None
    kind: ClassVar[AgentKind] = "llm"

    def __post_init__(self) -> None:
        AgentDefinition.__post_init__(self)
        if self.provider is not None and not callable(getattr(self.provider, "generate", None)):
            raise InvalidConfigError("must provide a generate(messages, options) method", field="provider")
        if self.system_prompt is not None and not isinstance(self.system_prompt, str):
            raise InvalidConfigError("must be a string", field="system_prompt")
        if isinstance(self.tools, (str, bytes)) or not isinstance(self.tools, Sequence):
            raise InvalidConfigError("must be a list of tool names", field="tools")
        object.__setattr__(
            self, "tools", tuple(_require_name(item, "tools") for item in self.tools)
        )
        if (
            isinstance(self.max_tool_turns, bool)
            or not isinstance(self.max_tool_turns, int)
            or self.max_tool_turns < 1
        ):
            raise InvalidConfigError("must be a positive integer", field="max_tool_turns")
        if self.output_schema is not None and not (
            isinstance(self.output_schema, type) and issubclass(self.output_schema, BaseModel)
        ):
            raise InvalidConfigError("must be a pydantic model class", field="output_schema")
        object.__setattr__(self, "options", _freeze_mapping(self.options, "options"))


@dataclass(slots=True)
class StepResult:
    """Step output together with state updates to merge into the session."""

    output: Any
    state_updates: Mapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class RunResult:
    """Outcome of a successful run; optional fields depend on the agent kind."""

    output: Any
    agent_name: str = ""
    combined: Optional[str] = None
    status: Optional[RunStatus] = None
    iterations: Optional[int] = None
    session_id: Optional[str] = None
    invocation_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"output": self.output}
        for key in ("combined", "status", "iterations"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


__all__ = [
    "AgentDefinition",
    "AgentKind",
    "AgentStep",
    "DEFAULT_LOOP_MAX_ITERATIONS",
    "FunctionStep",
    "LLMAgent",
    "LoopAgent",
    "ParallelAgent",
    "RunResult",
    "RunStatus",
    "STEP_TYPES",
    "SequentialAgent",
    "Step",
    "StepKind",
    "StepResult",
    "ToolStep",
    "TransformStep",
    "build_step",
]
