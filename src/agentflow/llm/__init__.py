"""LLM provider contract, built-in providers and prompt construction."""

from __future__ import annotations

from agentflow.llm.anthropic_api import AnthropicConfig, AnthropicProvider
from agentflow.llm.factory import create_provider
from agentflow.llm.openai_api import OpenAIConfig, OpenAIProvider
from agentflow.llm.prompt import PromptBuilder, render_input
from agentflow.llm.provider import LLMProvider, MockProvider
from agentflow.llm.structured import extract_json, json_output_instructions, parse_structured_output

__all__ = [
    "AnthropicConfig",
    "AnthropicProvider",
    "LLMProvider",
    "MockProvider",
    "OpenAIConfig",
    "OpenAIProvider",
    "PromptBuilder",
    "create_provider",
    "extract_json",
    "json_output_instructions",
    "parse_structured_output",
    "render_input",
]
