"""
agentflow: an execution engine for declarative agent pipelines.

Agents compose function, tool, transform and sub-agent steps under
sequential, parallel, loop or LLM-directed policies, against per-session
memory, with bounded-time runs and structured errors.
"""

from __future__ import annotations

from agentflow.agent import (
    AgentDefinition,
    AgentProcess,
    AgentStep,
    FunctionStep,
    LLMAgent,
    LoopAgent,
    ParallelAgent,
    RunResult,
    SequentialAgent,
    StepResult,
    ToolStep,
    TransformStep,
    agent_from_config,
    create_agent,
)
from agentflow.callbacks import CallbackRegistry, Halt
from agentflow.core import Event, FinalAnswer, ToolCall, Unparseable, parse_directive
from agentflow.engine import Engine
from agentflow.errors import (
    AgentExecutionError,
    AgentFlowError,
    InvalidConfigError,
    OutputValidationError,
    ProviderError,
    RunTimeoutError,
    StepExecutionError,
    ToolError,
    ToolExecutionError,
    ToolNotFoundError,
)
from agentflow.llm import MockProvider
from agentflow.memory import InMemoryStore, SessionMemory
from agentflow.runtime import Runtime
from agentflow.tools import FunctionTool, MemoryTool, Tool, ToolContext, ToolRegistry, tool

__version__ = "0.1.0"

__all__ = [
    "AgentDefinition",
    "AgentExecutionError",
    "AgentFlowError",
    "AgentProcess",
    "AgentStep",
    "CallbackRegistry",
    "Engine",
    "Event",
    "FinalAnswer",
    "FunctionStep",
    "FunctionTool",
    "Halt",
    "InMemoryStore",
    "InvalidConfigError",
    "LLMAgent",
    "LoopAgent",
    "MemoryTool",
    "MockProvider",
    "OutputValidationError",
    "ParallelAgent",
    "ProviderError",
    "RunResult",
    "RunTimeoutError",
    "Runtime",
    "SequentialAgent",
    "SessionMemory",
    "StepExecutionError",
    "StepResult",
    "Tool",
    "ToolCall",
    "ToolContext",
    "ToolError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolRegistry",
    "ToolStep",
    "TransformStep",
    "Unparseable",
    "__version__",
    "create_agent",
    "agent_from_config",
    "parse_directive",
    "tool",
]
