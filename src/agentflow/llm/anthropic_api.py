"""Anthropic Messages API provider."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Mapping, MutableMapping, Optional, Sequence

from anthropic import Anthropic, AnthropicError

from agentflow.core.types import Message
from agentflow.errors import ProviderError
from agentflow.settings import AgentFlowSettings, get_settings


@dataclass(slots=True)
class AnthropicConfig:
    """Configuration for the Anthropic provider."""

    model: str = "claude-3-5-sonnet-20241022"
    temperature: float = 0.2
    max_output_tokens: int = 2048

    @classmethod
    def from_settings(cls, settings: Optional[AgentFlowSettings] = None) -> "AnthropicConfig":
        resolved = settings or get_settings()
        return cls(
            model=resolved.ANTHROPIC_MODEL,
            temperature=resolved.ANTHROPIC_TEMPERATURE,
            max_output_tokens=resolved.ANTHROPIC_MAX_OUTPUT_TOKENS,
        )


class AnthropicProvider:
    """Generate replies through the Anthropic Messages API.

    System messages are lifted into the ``system`` parameter; tool role
    messages are sent as user turns.
    """

    name = "anthropic"

    def __init__(
        self,
        config: AnthropicConfig | None = None,
        *,
        client_factory: Callable[..., Any] = Anthropic,
    ) -> None:
        self.config = config or AnthropicConfig.from_settings()
        self._client_factory = client_factory
        self.last_usage: MutableMapping[str, Any] = {}

    def generate(self, messages: Sequence[Message], options: Mapping[str, Any]) -> str:
        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise ProviderError("ANTHROPIC_API_KEY is not set.", provider=self.name)

        system_parts = [message.content for message in messages if message.role == "system"]
        chat = [
            {
                "role": "assistant" if message.role == "assistant" else "user",
                "content": message.content,
            }
            for message in messages
            if message.role != "system"
        ]

        request: dict[str, Any] = {
            "model": options.get("model", self.config.model),
            "max_tokens": options.get("max_output_tokens", self.config.max_output_tokens),
            "temperature": options.get("temperature", self.config.temperature),
            "messages": chat,
        }
        if system_parts:
            request["system"] = "\n\n".join(system_parts)

        client = self._client_factory(api_key=api_key)
        try:
            response = client.messages.create(**request)
        except AnthropicError as exc:
            raise ProviderError(f"Anthropic request failed: {exc}", provider=self.name) from exc

        output_segments: list[str] = []
        for block in getattr(response, "content", []) or []:
            payload = _normalize_obj(block)
            text_value = payload.get("text")
            if payload.get("type") == "text" and isinstance(text_value, str):
                output_segments.append(text_value)

        self.last_usage = _normalize_obj(getattr(response, "usage", None))
        if not output_segments:
            raise ProviderError("Anthropic response contained no text blocks", provider=self.name)
        return "\n".join(output_segments)


def _normalize_obj(value: Any) -> dict[str, Any]:
    """Convert Anthropic SDK objects into dictionaries."""
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    if hasattr(value, "model_dump"):
        dumped = value.model_dump()
        if isinstance(dumped, dict):
            return dict(dumped)
    return {}


__all__ = ["AnthropicConfig", "AnthropicProvider"]
