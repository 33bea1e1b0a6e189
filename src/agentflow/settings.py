"""Global settings for runtime defaults and provider selection."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ProviderName = Literal["mock", "openai", "anthropic"]


class AgentFlowSettings(BaseSettings):
    """Environment-driven configuration for agent runs and LLM providers."""

    model_config = SettingsConfigDict(
        env_prefix="AGENTFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DEFAULT_TIMEOUT_MS: int = Field(
        default=5000,
        description="Default call-level timeout applied to agent runs.",
    )
    LOOP_MAX_ITERATIONS: int = Field(
        default=10,
        description="Iteration bound used when a loop agent does not declare one.",
    )
    MAX_TOOL_TURNS: int = Field(
        default=1,
        description="Tool directives an LLM agent may execute in one run.",
    )
    LLM_PROVIDER: str = Field(
        default="mock",
        description="Provider used when an LLM agent has none (mock|openai|anthropic).",
    )
    OPENAI_MODEL: str = Field(
        default="o4-mini",
        description="OpenAI Responses model identifier.",
    )
    OPENAI_TEMPERATURE: float = Field(
        default=0.3,
        description="Sampling temperature for OpenAI Responses API.",
    )
    OPENAI_MAX_OUTPUT_TOKENS: int = Field(
        default=2048,
        description="Maximum output tokens for OpenAI Responses API.",
    )
    ANTHROPIC_MODEL: str = Field(
        default="claude-3-5-sonnet-20241022",
        description="Anthropic messages model identifier.",
    )
    ANTHROPIC_TEMPERATURE: float = Field(
        default=0.2,
        description="Sampling temperature for Anthropic API.",
    )
    ANTHROPIC_MAX_OUTPUT_TOKENS: int = Field(
        default=2048,
        description="Maximum output tokens for Anthropic API responses.",
    )
    CATALOG_DIR: str = Field(
        default="catalog",
        description="Directory containing declarative agent YAML files.",
    )
    OTEL_TRACING_ENABLED: bool = Field(
        default=False,
        description="Install an OpenTelemetry SDK tracer provider on startup.",
    )
    OTLP_ENDPOINT: str | None = Field(
        default=None,
        description="OTLP HTTP endpoint (e.g. http://localhost:4318).",
    )
    SERVICE_NAME: str = Field(
        default="agentflow",
        description="Service name attached to exported spans.",
    )

    @model_validator(mode="after")
    def validate_limits(self) -> "AgentFlowSettings":
        """Reject non-positive bounds and normalize the provider name."""
        if self.DEFAULT_TIMEOUT_MS <= 0:
            raise ValueError("AGENTFLOW_DEFAULT_TIMEOUT_MS must be positive")
        if self.LOOP_MAX_ITERATIONS < 0:
            raise ValueError("AGENTFLOW_LOOP_MAX_ITERATIONS must not be negative")
        if self.MAX_TOOL_TURNS < 1:
            raise ValueError("AGENTFLOW_MAX_TOOL_TURNS must be at least 1")
        normalized = self.LLM_PROVIDER.strip().lower()
        if normalized not in {"mock", "openai", "anthropic"}:
            raise ValueError("AGENTFLOW_LLM_PROVIDER must be one of mock, openai, anthropic")
        object.__setattr__(self, "LLM_PROVIDER", normalized)
        return self


@lru_cache(maxsize=1)
def get_settings() -> AgentFlowSettings:
    """Return cached settings loaded from the environment."""
    return AgentFlowSettings()


__all__ = ["AgentFlowSettings", "ProviderName", "get_settings"]
