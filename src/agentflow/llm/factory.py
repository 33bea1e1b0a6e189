"""Provider resolution from settings."""

from __future__ import annotations

from typing import Optional

from agentflow.errors import InvalidConfigError
from agentflow.llm.anthropic_api import AnthropicConfig, AnthropicProvider
from agentflow.llm.openai_api import OpenAIConfig, OpenAIProvider
from agentflow.llm.provider import LLMProvider, MockProvider
from agentflow.settings import AgentFlowSettings, get_settings


def create_provider(
    name: Optional[str] = None, settings: Optional[AgentFlowSettings] = None
) -> LLMProvider:
    """Instantiate the provider named ``name`` (defaults to ``AGENTFLOW_LLM_PROVIDER``)."""
    resolved = settings or get_settings()
    selected = (name or resolved.LLM_PROVIDER).strip().lower()
    if selected == "mock":
        return MockProvider()
    if selected == "openai":
        return OpenAIProvider(OpenAIConfig.from_settings(resolved))
    if selected == "anthropic":
        return AnthropicProvider(AnthropicConfig.from_settings(resolved))
    raise InvalidConfigError(f"unknown LLM provider {selected!r}", field="provider")


__all__ = ["create_provider"]
