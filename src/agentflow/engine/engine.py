"""Engine wiring composite policies, tools, memory and hooks together."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

from agentflow.agent.spec import AgentDefinition, LLMAgent, RunResult
from agentflow.callbacks import CallbackRegistry
from agentflow.core.callables import call_maybe_async
from agentflow.core.types import Message
from agentflow.engine.interpreter import StepInterpreter
from agentflow.engine.llm import run_llm
from agentflow.engine.loop import run_loop
from agentflow.engine.parallel import run_parallel
from agentflow.engine.sequential import run_sequential
from agentflow.errors import InvalidConfigError, ProviderError, ToolExecutionError, ToolNotFoundError
from agentflow.llm.factory import create_provider
from agentflow.llm.prompt import PromptBuilder
from agentflow.llm.provider import LLMProvider
from agentflow.memory.facade import SessionMemory
from agentflow.observability.context import InvocationContext, use_invocation
from agentflow.observability.metrics import MetricsRegistry
from agentflow.observability.tracing import trace_span
from agentflow.settings import AgentFlowSettings, get_settings
from agentflow.tools.base import ToolContext
from agentflow.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

Policy = Callable[["Engine", Any, Any, InvocationContext], Awaitable[RunResult]]

POLICIES: Mapping[str, Policy] = {
    "sequential": run_sequential,
    "parallel": run_parallel,
    "loop": run_loop,
    "llm": run_llm,
}


class Engine:
    """Runs agent definitions directly, without serialization or timeouts.

    All shared collaborators are injected; the engine holds no global state.
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
        prompts: Optional[PromptBuilder] = None,
    ) -> None:
        self.tools = tools if tools is not None else ToolRegistry()
        self.memory = memory if memory is not None else SessionMemory()
        self.callbacks = callbacks if callbacks is not None else CallbackRegistry()
        self.metrics = metrics if metrics is not None else MetricsRegistry()
        self.settings = settings or get_settings()
        self.prompts = prompts or PromptBuilder()
        self.interpreter = StepInterpreter(self)
        self._default_provider = default_provider

    async def run_agent(
        self, agent: AgentDefinition, value: Any, invocation: InvocationContext
    ) -> RunResult:
        """Dispatch ``agent`` to the policy for its kind and record its output."""
        policy = POLICIES.get(agent.kind)
        if policy is None:
            raise InvalidConfigError(f"unsupported agent kind {agent.kind!r}", field="kind")

        with use_invocation(invocation), trace_span(
            "agentflow.agent.run",
            {
                "agentflow.agent": agent.name,
                "agentflow.agent.kind": agent.kind,
                "agentflow.session": invocation.session_id,
                "agentflow.invocation": invocation.invocation_id,
            },
        ):
            result = await policy(self, agent, value, invocation)

        result.agent_name = agent.name
        result.session_id = invocation.session_id
        result.invocation_id = invocation.invocation_id
        self.memory.add_message(
            invocation.session_id,
            author="agent",
            content=result.output,
            invocation_id=invocation.invocation_id,
            metadata={"agent": agent.name, "kind": agent.kind, "status": result.status},
        )
        return result

    def provider_for(self, agent: LLMAgent) -> LLMProvider:
        if agent.provider is not None:
            return agent.provider
        if self._default_provider is None:
            self._default_provider = create_provider(settings=self.settings)
        return self._default_provider

    def _hook_context(self, invocation: InvocationContext, **extra: Any) -> dict[str, Any]:
        return {
            "agent_name": invocation.agent_name,
            "session_id": invocation.session_id,
            "invocation_id": invocation.invocation_id,
            **extra,
        }

    async def call_tool(
        self, name: str, params: Mapping[str, Any], invocation: InvocationContext
    ) -> Any:
        """Resolve and invoke a tool, logging the call and its result to the session.

        Raises ``ToolNotFoundError`` for unknown names and
        ``ToolExecutionError`` when the tool fails.
        """
        tool = self.tools.lookup(name)
        if tool is None:
            self.metrics.record_tool_call(name, ok=False)
            raise ToolNotFoundError(name)

        hook_context = self._hook_context(invocation, tool_name=name)
        before = await self.callbacks.run("before_tool_call", dict(params), hook_context)
        arguments = before.value
        call_record = {"name": name, "arguments": arguments}

        if before.halted:
            result = arguments
        else:
            context = ToolContext(
                session_id=invocation.session_id,
                invocation_id=invocation.invocation_id,
                agent_name=invocation.agent_name,
                memory=self.memory,
            )
            with trace_span(
                "agentflow.tool.call",
                {"agentflow.tool": name, "agentflow.session": invocation.session_id},
            ):
                try:
                    result = await self.tools.invoke(tool, arguments, context)
                except ToolExecutionError as exc:
                    self.metrics.record_tool_call(name, ok=False)
                    self.memory.add_message(
                        invocation.session_id,
                        author="tool",
                        invocation_id=invocation.invocation_id,
                        tool_calls=[call_record],
                        tool_results=[{"name": name, "status": "error", "error": str(exc.cause)}],
                    )
                    raise
            self.metrics.record_tool_call(name, ok=True)

        after = await self.callbacks.run("after_tool_call", result, hook_context)
        result = after.value
        self.memory.add_message(
            invocation.session_id,
            author="tool",
            content=result,
            invocation_id=invocation.invocation_id,
            tool_calls=[call_record],
            tool_results=[{"name": name, "status": "ok", "content": result}],
        )
        return result

    async def generate(
        self,
        provider: LLMProvider,
        messages: Sequence[Message],
        options: Mapping[str, Any],
        invocation: InvocationContext,
    ) -> str:
        """Call the provider; its errors propagate to the caller unchanged."""
        provider_name = getattr(provider, "name", type(provider).__name__)
        hook_context = self._hook_context(invocation, provider=provider_name)
        before = await self.callbacks.run("before_llm_call", list(messages), hook_context)
        if before.halted:
            return str(before.value)

        with trace_span(
            "agentflow.llm.call",
            {
                "agentflow.agent": invocation.agent_name,
                "agentflow.llm.provider": provider_name,
                "agentflow.llm.messages": len(before.value),
            },
        ):
            reply = await call_maybe_async(provider.generate, before.value, options)

        if not isinstance(reply, str):
            raise ProviderError(
                f"Provider returned {type(reply).__name__}, expected text", provider=provider_name
            )
        after = await self.callbacks.run("after_llm_call", reply, hook_context)
        return str(after.value)


__all__ = ["Engine", "POLICIES"]
