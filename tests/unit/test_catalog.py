from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

from agentflow.agent import AgentStep, FunctionStep, LLMAgent, LoopAgent, SequentialAgent
from agentflow.catalog import AgentCatalog
from agentflow.errors import InvalidConfigError
from agentflow.llm import MockProvider
from agentflow.runtime import Runtime
from agentflow.settings import AgentFlowSettings


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dedent(content), encoding="utf-8")


@pytest.fixture
def catalog_dir(tmp_path: Path) -> Path:
    _write(
        tmp_path / "steps.py",
        """
        def shout(value):
            return str(value).upper()

        def exclaim(value, state):
            return value + "!"

        def under_three(output, iteration, state):
            return iteration < 3
        """,
    )
    _write(
        tmp_path / "agents" / "shouter.yaml",
        """
        kind: sequential
        description: Upper-cases its input
        steps:
          - type: function
            function: steps.py:shout
          - type: transform
            function: steps.py:exclaim
        """,
    )
    _write(
        tmp_path / "agents" / "wrapper.yaml",
        """
        kind: sequential
        steps:
          - type: agent
            agent: shouter
        """,
    )
    _write(
        tmp_path / "agents" / "repeater.yml",
        """
        kind: loop
        condition: steps.py:under_three
        steps:
          - type: function
            function: steps.py:shout
        """,
    )
    _write(
        tmp_path / "agents" / "chat.yaml",
        """
        kind: llm
        provider: mock
        system_prompt: Be brief.
        tools: [memory_tool]
        max_tool_turns: 2
        """,
    )
    return tmp_path


def test_list_agents(catalog_dir: Path) -> None:
    catalog = AgentCatalog(catalog_dir)

    assert catalog.list_agents() == ["chat", "repeater", "shouter", "wrapper"]


def test_load_sequential_with_file_entrypoints(catalog_dir: Path) -> None:
    agent = AgentCatalog(catalog_dir).load("shouter")

    assert isinstance(agent, SequentialAgent)
    assert agent.name == "shouter"
    assert agent.description == "Upper-cases its input"
    assert isinstance(agent.steps[0], FunctionStep)
    assert agent.steps[0].function("abc") == "ABC"


def test_load_resolves_agent_references(catalog_dir: Path) -> None:
    catalog = AgentCatalog(catalog_dir)

    wrapper = catalog.load("wrapper")

    step = wrapper.steps[0]
    assert isinstance(step, AgentStep)
    assert step.agent is catalog.load("shouter")


def test_load_loop_and_llm(catalog_dir: Path) -> None:
    settings = AgentFlowSettings(LOOP_MAX_ITERATIONS=4)
    catalog = AgentCatalog(catalog_dir, settings=settings)

    loop = catalog.load("repeater")
    chat = catalog.load("chat")

    assert isinstance(loop, LoopAgent)
    assert loop.max_iterations == 4
    assert isinstance(chat, LLMAgent)
    assert isinstance(chat.provider, MockProvider)
    assert chat.tools == ("memory_tool",)
    assert chat.max_tool_turns == 2


@pytest.mark.asyncio
async def test_loaded_agent_runs(catalog_dir: Path) -> None:
    agent = AgentCatalog(catalog_dir).load("wrapper")

    async with Runtime(settings=AgentFlowSettings()) as runtime:
        result = await runtime.run(agent, "hello")

    assert result.output == "HELLO!"


def test_cycles_are_rejected(tmp_path: Path) -> None:
    _write(
        tmp_path / "agents" / "ping.yaml",
        """
        kind: sequential
        steps:
          - type: agent
            agent: pong
        """,
    )
    _write(
        tmp_path / "agents" / "pong.yaml",
        """
        kind: sequential
        steps:
          - type: agent
            agent: ping
        """,
    )

    with pytest.raises(InvalidConfigError, match="ping -> pong -> ping"):
        AgentCatalog(tmp_path).load("ping")


def test_missing_agent(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        AgentCatalog(tmp_path).load("absent")


@pytest.mark.parametrize(
    "content",
    [
        "- not\n- a mapping\n",
        "steps: []\n",
        "kind: sequential\nsteps:\n  - type: function\n    function: 42\n",
        "kind: sequential\nunexpected: true\n",
    ],
)
def test_malformed_descriptors(tmp_path: Path, content: str) -> None:
    _write(tmp_path / "agents" / "bad.yaml", content)

    with pytest.raises(InvalidConfigError):
        AgentCatalog(tmp_path).load("bad")


def test_resolve_module_entrypoint(tmp_path: Path) -> None:
    catalog = AgentCatalog(tmp_path)

    assert catalog.resolve_entrypoint("json:dumps")({"a": 1}) == '{"a": 1}'
    with pytest.raises(InvalidConfigError):
        catalog.resolve_entrypoint("json.dumps")
    with pytest.raises(InvalidConfigError):
        catalog.resolve_entrypoint("json:missing_attr")
    with pytest.raises(InvalidConfigError):
        catalog.resolve_entrypoint("no_such_module_xyz:fn")


def test_llm_output_schema_entrypoint(tmp_path: Path) -> None:
    _write(
        tmp_path / "schemas.py",
        """
        from pydantic import BaseModel

        class Summary(BaseModel):
            title: str
        """,
    )
    _write(
        tmp_path / "agents" / "summarizer.yaml",
        """
        kind: llm
        provider: mock
        output_schema: schemas.py:Summary
        """,
    )

    agent = AgentCatalog(tmp_path).load("summarizer")

    assert isinstance(agent, LLMAgent)
    assert agent.output_schema is not None
    assert agent.output_schema.__name__ == "Summary"


REPO_CATALOG = Path(__file__).resolve().parents[2] / "catalog"


@pytest.mark.asyncio
async def test_sample_catalog_agents_run() -> None:
    catalog = AgentCatalog(REPO_CATALOG)

    assert catalog.list_agents() == ["assistant", "padder", "text-stats", "text-summary"]

    async with Runtime(settings=AgentFlowSettings()) as runtime:
        summary = await runtime.run(catalog.load("text-summary"), "  Hello   World ", session_id="s")
        padded = await runtime.run(catalog.load("padder"), "abc", session_id="s")

        assert summary.output == {0: 2, 1: "hello"}
        assert padded.output == "abcabcabcabc"
        assert padded.status == "completed"
        assert padded.iterations == 2
        assert runtime.memory.get_state("s", "runs") == 3
