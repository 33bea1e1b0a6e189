from __future__ import annotations

from typing import Any

import pytest
from anthropic import AnthropicError
from openai import OpenAIError
from pydantic import BaseModel

from agentflow.core.types import Message, ToolDefinition
from agentflow.errors import InvalidConfigError, ProviderError
from agentflow.llm import (
    AnthropicProvider,
    MockProvider,
    OpenAIConfig,
    OpenAIProvider,
    PromptBuilder,
    create_provider,
    render_input,
)
from agentflow.settings import AgentFlowSettings

_MESSAGES = [
    Message(role="system", content="Be brief."),
    Message(role="user", content="Say hello"),
]


class _DummyUsage:
    def __init__(self, payload: dict[str, Any]) -> None:
        self._payload = payload

    def model_dump(self) -> dict[str, Any]:
        return dict(self._payload)


class _DummyContent:
    def __init__(self, text: str) -> None:
        self.type = "output_text"
        self.text = text

    def model_dump(self) -> dict[str, Any]:
        return {"type": self.type, "text": self.text}


class _DummyMessage:
    def __init__(self, content: list[_DummyContent]) -> None:
        self.type = "message"
        self.content = content

    def model_dump(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "content": [item.model_dump() for item in self.content],
        }


class _DummyResponse:
    def __init__(self, message_text: str) -> None:
        self.output = [_DummyMessage([_DummyContent(message_text)])]
        self.usage = _DummyUsage({"input_tokens": 12, "output_tokens": 3})


class _DummyResponses:
    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []

    def create(self, *args: Any, **kwargs: Any) -> _DummyResponse:
        self.requests.append(kwargs)
        return _DummyResponse("OpenAI says hello")


class _DummyOpenAIClient:
    responses = _DummyResponses()

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        pass


class _FailingResponses:
    def create(self, *args: Any, **kwargs: Any) -> Any:
        raise OpenAIError("rate limited")


class _FailingOpenAIClient:
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.responses = _FailingResponses()


class _DummyAnthropicBlock:
    def __init__(self, text: str) -> None:
        self.type = "text"
        self.text = text

    def model_dump(self) -> dict[str, Any]:
        return {"type": self.type, "text": self.text}


class _DummyAnthropicResponse:
    def __init__(self, text: str) -> None:
        self.content = [_DummyAnthropicBlock(text)]
        self.usage = _DummyUsage({"input_tokens": 4, "output_tokens": 2})


class _DummyAnthropicMessages:
    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []

    def create(self, **kwargs: Any) -> _DummyAnthropicResponse:
        self.requests.append(kwargs)
        return _DummyAnthropicResponse("Claude says hello")


class _DummyAnthropicClient:
    messages = _DummyAnthropicMessages()

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        pass


class _FailingAnthropicMessages:
    def create(self, **kwargs: Any) -> Any:
        raise AnthropicError("overloaded")


class _FailingAnthropicClient:
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.messages = _FailingAnthropicMessages()


def test_mock_provider_echoes_last_user_message() -> None:
    provider = MockProvider()

    assert provider.generate(_MESSAGES, {}) == "Mock response to: Say hello"
    assert provider.generate([Message(role="system", content="x")], {}) == "No user message found"
    assert len(provider.calls) == 2


def test_mock_provider_script_and_override() -> None:
    provider = MockProvider(["first", ProviderError("down", provider="mock")])

    assert provider.generate(_MESSAGES, {}) == "first"
    with pytest.raises(ProviderError):
        provider.generate(_MESSAGES, {})
    assert provider.generate(_MESSAGES, {"mock_response": "forced"}) == "forced"
    assert provider.generate(_MESSAGES, {}) == "Mock response to: Say hello"


def test_mock_provider_override_keeps_script() -> None:
    provider = MockProvider(["first"])

    assert provider.generate(_MESSAGES, {"mock_response": "x"}) == "x"
    assert provider.generate(_MESSAGES, {}) == "first"
    assert len(provider.calls) == 2


def test_mock_provider_reply_function() -> None:
    provider = MockProvider(lambda messages, options: f"{len(messages)} messages")

    assert provider.generate(_MESSAGES, {}) == "2 messages"


def test_openai_provider_normalizes_output(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    _DummyOpenAIClient.responses = _DummyResponses()
    provider = OpenAIProvider(OpenAIConfig(model="gpt-test"), client_factory=_DummyOpenAIClient)

    reply = provider.generate(_MESSAGES, {"temperature": 0.0})

    assert reply == "OpenAI says hello"
    assert provider.last_usage["input_tokens"] == 12
    request = _DummyOpenAIClient.responses.requests[0]
    assert request["model"] == "gpt-test"
    assert request["temperature"] == 0.0
    assert request["input"][1] == {"role": "user", "content": "Say hello"}


def test_openai_provider_requires_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    provider = OpenAIProvider(OpenAIConfig(), client_factory=_DummyOpenAIClient)

    with pytest.raises(ProviderError, match="OPENAI_API_KEY"):
        provider.generate(_MESSAGES, {})


def test_openai_provider_wraps_sdk_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    provider = OpenAIProvider(OpenAIConfig(), client_factory=_FailingOpenAIClient)

    with pytest.raises(ProviderError) as excinfo:
        provider.generate(_MESSAGES, {})

    assert excinfo.value.provider == "openai"


def test_anthropic_provider_lifts_system_prompt(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    _DummyAnthropicClient.messages = _DummyAnthropicMessages()
    provider = AnthropicProvider(client_factory=_DummyAnthropicClient)

    reply = provider.generate(_MESSAGES, {})

    assert reply == "Claude says hello"
    request = _DummyAnthropicClient.messages.requests[0]
    assert request["system"] == "Be brief."
    assert request["messages"] == [{"role": "user", "content": "Say hello"}]
    assert provider.last_usage == {"input_tokens": 4, "output_tokens": 2}


def test_anthropic_provider_wraps_sdk_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    provider = AnthropicProvider(client_factory=_FailingAnthropicClient)

    with pytest.raises(ProviderError, match="overloaded"):
        provider.generate(_MESSAGES, {})


def test_create_provider_from_settings() -> None:
    assert isinstance(create_provider(settings=AgentFlowSettings()), MockProvider)
    assert isinstance(create_provider("openai"), OpenAIProvider)
    assert isinstance(create_provider("Anthropic"), AnthropicProvider)
    with pytest.raises(InvalidConfigError):
        create_provider("cohere")


def test_prompt_builder_layout() -> None:
    builder = PromptBuilder()
    tools = [
        ToolDefinition(
            name="weather",
            description="Current weather",
            parameter_schema={"type": "object", "properties": {"location": {"type": "string"}}},
        )
    ]
    history = [Message(role="user", content="earlier"), Message(role="assistant", content="reply")]

    messages = builder.build(
        user_input={"city": "Paris"}, system_prompt="You are helpful.", history=history, tools=tools
    )

    assert [m.role for m in messages] == ["system", "user", "assistant", "user"]
    system = messages[0].content
    assert system.startswith("You are helpful.")
    assert "- weather: Current weather" in system
    assert 'call_tool("<tool name>"' in system
    assert messages[-1].content == '{"city": "Paris"}'


def test_prompt_builder_without_system_or_tools() -> None:
    messages = PromptBuilder().build(user_input="hi")

    assert messages == [Message(role="user", content="hi")]


def test_render_input() -> None:
    assert render_input("text") == "text"
    assert render_input({"b": 1, "a": 2}) == '{"a": 2, "b": 1}'
    assert render_input(3) == "3"


class Forecast(BaseModel):
    city: str
    temperature: int


def test_prompt_builder_appends_json_output_instructions() -> None:
    system = PromptBuilder().system_message("Report the weather.", (), Forecast)

    assert system is not None
    assert system.content.startswith("Report the weather.")
    assert '"temperature"' in system.content
    assert "Required fields: city, temperature" in system.content
