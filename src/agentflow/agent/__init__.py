"""Agent definitions, construction helpers and the per-agent process."""

from __future__ import annotations

from agentflow.agent.factory import AGENT_TYPES, agent_from_config, create_agent
from agentflow.agent.process import AgentProcess, ProcessState
from agentflow.agent.spec import (
    AgentDefinition,
    AgentKind,
    AgentStep,
    FunctionStep,
    LLMAgent,
    LoopAgent,
    ParallelAgent,
    RunResult,
    SequentialAgent,
    Step,
    StepResult,
    ToolStep,
    TransformStep,
    build_step,
)

__all__ = [
    "AGENT_TYPES",
    "AgentDefinition",
    "AgentKind",
    "AgentProcess",
    "AgentStep",
    "FunctionStep",
    "LLMAgent",
    "LoopAgent",
    "ParallelAgent",
    "ProcessState",
    "RunResult",
    "SequentialAgent",
    "Step",
    "StepResult",
    "ToolStep",
    "TransformStep",
    "agent_from_config",
    "build_step",
    "create_agent",
]
