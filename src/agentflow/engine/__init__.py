"""Step interpreter, composite policies and the engine that dispatches them."""

from __future__ import annotations

from agentflow.engine.engine import POLICIES, Engine
from agentflow.engine.interpreter import StepInterpreter, split_result
from agentflow.engine.llm import run_llm
from agentflow.engine.loop import run_loop
from agentflow.engine.parallel import combine, run_parallel
from agentflow.engine.sequential import run_sequential, run_steps

__all__ = [
    "Engine",
    "POLICIES",
    "StepInterpreter",
    "combine",
    "run_llm",
    "run_loop",
    "run_parallel",
    "run_sequential",
    "run_steps",
    "split_result",
]
