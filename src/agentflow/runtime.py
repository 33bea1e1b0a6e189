"""Application-level lifecycle for shared registries and agent processes."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Union

from agentflow.agent.process import AgentProcess
from agentflow.agent.spec import AgentDefinition, RunResult
from agentflow.callbacks import CallbackRegistry
from agentflow.engine.engine import Engine
from agentflow.llm.provider import LLMProvider
from agentflow.memory.facade import SessionMemory
from agentflow.observability.metrics import MetricsRegistry
from agentflow.settings import AgentFlowSettings, get_settings
from agentflow.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class Runtime:
    """Owns the tool registry, session memory, hooks, metrics and processes.

    Create one per application, use it as an async context manager (or call
    :meth:`aclose`) so every agent process is stopped on shutdown.

    Usage:
        async with Runtime() as runtime:
            result = await runtime.run(agent, "hello", timeout_ms=1000)
    """

    def __init__(
        self,
        *,
        tools: Optional[ToolRegistry] = None,
        memory: Optional[SessionMemory] = None,
        callbacks: Optional[CallbackRegistry] = None,
        metrics: Optional[MetricsRegistry] = None,
        settings: Optional[AgentFlowSettings] = None,
        default_provider: Optional[LLMProvider] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.engine = Engine(
            tools=tools,
            memory=memory,
            callbacks=callbacks,
            metrics=metrics,
            settings=self.settings,
            default_provider=default_provider,
        )
        self._processes: list[AgentProcess] = []
        self._by_definition: dict[AgentDefinition, AgentProcess] = {}

    @property
    def tools(self) -> ToolRegistry:
        return self.engine.tools

    @property
    def memory(self) -> SessionMemory:
        return self.engine.memory

    @property
    def callbacks(self) -> CallbackRegistry:
        return self.engine.callbacks

    @property
    def metrics(self) -> MetricsRegistry:
        return self.engine.metrics

    async def start_agent(
        self, definition: AgentDefinition, *, default_timeout_ms: Optional[int] = None
    ) -> AgentProcess:
        """Start a new process for ``definition`` owned by this runtime."""
        process = AgentProcess(definition, self.engine, default_timeout_ms=default_timeout_ms)
        await process.start()
        self._processes.append(process)
        self._by_definition.setdefault(definition, process)
        return process

    async def process_for(self, definition: AgentDefinition) -> AgentProcess:
        """Return the runtime's process for ``definition``, starting it on first use."""
        process = self._by_definition.get(definition)
        if process is None or process.state == "stopped":
            process = AgentProcess(definition, self.engine)
            await process.start()
            self._processes.append(process)
            self._by_definition[definition] = process
        return process

    async def run(
        self,
        agent: Union[AgentDefinition, AgentProcess],
        value: Any,
        *,
        timeout_ms: Optional[int] = None,
        session_id: Optional[str] = None,
    ) -> RunResult:
        process = agent if isinstance(agent, AgentProcess) else await self.process_for(agent)
        return await process.run(value, timeout_ms=timeout_ms, session_id=session_id)

    def run_sync(
        self,
        agent: AgentDefinition,
        value: Any,
        *,
        timeout_ms: Optional[int] = None,
        session_id: Optional[str] = None,
    ) -> RunResult:
        """Run once from synchronous code using a short-lived process.

        Memory, tools and hooks persist on the runtime between calls; pass
        ``session_id`` (or set it on the definition) to reuse a session.
        Must not be called from a running event loop.
        """

        async def _once() -> RunResult:
            process = AgentProcess(definition=agent, engine=self.engine)
            await process.start()
            try:
                return await process.run(value, timeout_ms=timeout_ms, session_id=session_id)
            finally:
                await process.stop()

        return asyncio.run(_once())

    async def aclose(self) -> None:
        processes, self._processes = self._processes, []
        self._by_definition.clear()
        for process in processes:
            await process.stop()
        if processes:
            logger.debug("Runtime stopped %d agent process(es)", len(processes))

    async def __aenter__(self) -> "Runtime":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


__all__ = ["Runtime"]
