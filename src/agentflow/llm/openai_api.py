"""OpenAI Responses API provider."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Mapping, MutableMapping, Optional, Sequence, cast

from openai import OpenAI, OpenAIError

from agentflow.core.types import Message
from agentflow.errors import ProviderError
from agentflow.settings import AgentFlowSettings, get_settings


@dataclass(slots=True)
class OpenAIConfig:
    """Configuration for the OpenAI provider."""

    model: str = "o4-mini"
    temperature: float = 0.3
    max_output_tokens: int = 2048

    @classmethod
    def from_settings(cls, settings: Optional[AgentFlowSettings] = None) -> "OpenAIConfig":
        resolved = settings or get_settings()
        return cls(
            model=resolved.OPENAI_MODEL,
            temperature=resolved.OPENAI_TEMPERATURE,
            max_output_tokens=resolved.OPENAI_MAX_OUTPUT_TOKENS,
        )


class OpenAIProvider:
    """Generate replies through the OpenAI Responses API."""

    name = "openai"

    def __init__(
        self,
        config: OpenAIConfig | None = None,
        *,
        client_factory: Callable[..., Any] = OpenAI,
    ) -> None:
        self.config = config or OpenAIConfig.from_settings()
        self._client_factory = client_factory
        self.last_usage: MutableMapping[str, Any] = {}

    def generate(self, messages: Sequence[Message], options: Mapping[str, Any]) -> str:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ProviderError("OPENAI_API_KEY is not set.", provider=self.name)

        client = self._client_factory(api_key=api_key)
        input_payload = [{"role": message.role, "content": message.content} for message in messages]

        try:
            response = client.responses.create(
                model=options.get("model", self.config.model),
                input=cast(Any, input_payload),
                temperature=options.get("temperature", self.config.temperature),
                max_output_tokens=options.get("max_output_tokens", self.config.max_output_tokens),
            )
        except OpenAIError as exc:
            raise ProviderError(f"OpenAI request failed: {exc}", provider=self.name) from exc

        output_texts: list[str] = []
        for item in getattr(response, "output", []) or []:
            _collect_output_text(_normalize_obj(item), output_texts)

        self.last_usage = _normalize_obj(getattr(response, "usage", None))
        if not output_texts:
            raise ProviderError("OpenAI response contained no text output", provider=self.name)
        return "\n".join(output_texts)


def _normalize_obj(value: Any) -> dict[str, Any]:
    """Convert SDK response objects into dictionaries."""
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    if hasattr(value, "model_dump"):
        dumped = value.model_dump()
        if isinstance(dumped, dict):
            return dict(dumped)
        return {}
    if isinstance(value, (list, tuple)):
        return {"items": [_normalize_obj(item) for item in value]}
    return {}


def _collect_output_text(payload: Mapping[str, Any], collector: list[str]) -> None:
    """Capture textual content emitted by the Responses API."""
    if payload.get("type") == "message" and isinstance(payload.get("content"), list):
        for chunk in payload["content"]:
            text_value = _extract_text(_normalize_obj(chunk))
            if text_value is not None:
                collector.append(text_value)
        return

    text_value = _extract_text(payload)
    if text_value is not None:
        collector.append(text_value)


def _extract_text(payload: Mapping[str, Any]) -> str | None:
    """Return plain text from known output payload shapes."""
    if payload.get("type") in {"output_text", "text"}:
        text_value = payload.get("text")
        if isinstance(text_value, str):
            return text_value
    return None


__all__ = ["OpenAIConfig", "OpenAIProvider"]
