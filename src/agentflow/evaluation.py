"""Scenario-based evaluation of agents.

Scenarios are loaded from YAML or JSON files and scored on two axes:

- response match: word-set Jaccard similarity between output and expectation
- tool trajectory: share of expected tool calls observed, in order
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Optional, Sequence, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from agentflow.agent.spec import AgentDefinition
from agentflow.errors import AgentFlowError, InvalidConfigError

if TYPE_CHECKING:
    from agentflow.runtime import Runtime

logger = logging.getLogger(__name__)

_WORD = re.compile(r"\w+")


class EvalScenario(BaseModel):
    """One evaluation case."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Scenario identifier")
    input: Any = Field(..., description="Value passed to the agent run")
    expected_output: Optional[str] = Field(
        default=None, description="Reference answer compared by word overlap"
    )
    expected_tool_calls: list[str] = Field(
        default_factory=list, description="Tool names expected in call order"
    )
    session_id: Optional[str] = Field(
        default=None, description="Session to run in (fresh session when omitted)"
    )


@dataclass(slots=True)
class ScenarioResult:
    scenario: EvalScenario
    output: Any = None
    tool_calls: list[str] = field(default_factory=list)
    response_score: float = 0.0
    trajectory_score: float = 0.0
    passed: bool = False
    error: Optional[str] = None


@dataclass(slots=True)
class EvalReport:
    agent_name: str
    results: list[ScenarioResult] = field(default_factory=list)

    @property
    def pass_rate(self) -> float:
        if not self.results:
            return 0.0
        return sum(1 for result in self.results if result.passed) / len(self.results)

    def as_dict(self) -> dict[str, Any]:
        return {
            "agent": self.agent_name,
            "total": len(self.results),
            "passed": sum(1 for result in self.results if result.passed),
            "pass_rate": self.pass_rate,
            "scenarios": [
                {
                    "name": result.scenario.name,
                    "passed": result.passed,
                    "response_score": result.response_score,
                    "trajectory_score": result.trajectory_score,
                    "error": result.error,
                }
                for result in self.results
            ],
        }


def response_match_score(actual: Any, expected: Optional[str]) -> float:
    """Jaccard similarity of lower-cased word sets; 1.0 when nothing is expected."""
    if expected is None:
        return 1.0
    actual_words = set(_WORD.findall(str(actual).lower()))
    expected_words = set(_WORD.findall(expected.lower()))
    if not actual_words and not expected_words:
        return 1.0
    return len(actual_words & expected_words) / len(actual_words | expected_words)


def tool_trajectory_score(actual: Sequence[str], expected: Sequence[str]) -> float:
    """Fraction of ``expected`` found as an in-order subsequence of ``actual``."""
    if not expected:
        return 1.0
    matched = 0
    remaining = iter(actual)
    for name in expected:
        for candidate in remaining:
            if candidate == name:
                matched += 1
                break
    return matched / len(expected)


def _scenario_items(raw: Any, source: Path) -> Iterable[Any]:
    if isinstance(raw, dict) and "scenarios" in raw:
        raw = raw["scenarios"]
    if isinstance(raw, dict):
        return [raw]
    if isinstance(raw, list):
        return raw
    raise InvalidConfigError(f"scenario file {source} must hold a mapping or a list")


def load_scenarios(path: Union[str, Path]) -> list[EvalScenario]:
    """Load scenarios from a ``.yaml``/``.yml``/``.json`` file or a directory of them."""
    source = Path(path)
    if source.is_dir():
        scenarios: list[EvalScenario] = []
        for child in sorted(source.iterdir()):
            if child.suffix in {".yaml", ".yml", ".json"}:
                scenarios.extend(load_scenarios(child))
        return scenarios

    with open(source, "r", encoding="utf-8") as f:
        raw = json.load(f) if source.suffix == ".json" else yaml.safe_load(f)

    scenarios = []
    for index, item in enumerate(_scenario_items(raw, source)):
        if isinstance(item, dict):
            item = {"name": f"{source.stem}-{index}", **item}
        try:
            scenarios.append(EvalScenario.model_validate(item))
        except ValidationError as exc:
            raise InvalidConfigError(f"invalid scenario #{index} in {source}: {exc}") from exc
    return scenarios


class Evaluator:
    """Runs scenarios against an agent through a :class:`Runtime`."""

    def __init__(
        self,
        runtime: "Runtime",
        *,
        response_threshold: float = 0.5,
        trajectory_threshold: float = 1.0,
        timeout_ms: Optional[int] = None,
    ) -> None:
        self.runtime = runtime
        self.response_threshold = response_threshold
        self.trajectory_threshold = trajectory_threshold
        self.timeout_ms = timeout_ms

    async def evaluate_scenario(
        self, agent: AgentDefinition, scenario: EvalScenario
    ) -> ScenarioResult:
        session_id = scenario.session_id or f"eval-{uuid.uuid4().hex[:12]}"
        result = ScenarioResult(scenario=scenario)
        try:
            run = await self.runtime.run(
                agent, scenario.input, timeout_ms=self.timeout_ms, session_id=session_id
            )
        except AgentFlowError as exc:
            result.error = str(exc)
            logger.info("Scenario %s failed: %s", scenario.name, exc)
            return result

        result.output = run.output
        result.tool_calls = [
            call.get("name", "")
            for event in self.runtime.memory.get_history(session_id)
            if event.author == "tool" and event.invocation_id == run.invocation_id
            for call in event.tool_calls
        ]
        result.response_score = response_match_score(run.output, scenario.expected_output)
        result.trajectory_score = tool_trajectory_score(
            result.tool_calls, scenario.expected_tool_calls
        )
        result.passed = (
            result.response_score >= self.response_threshold
            and result.trajectory_score >= self.trajectory_threshold
        )
        return result

    async def evaluate(
        self, agent: AgentDefinition, scenarios: Iterable[EvalScenario]
    ) -> EvalReport:
        report = EvalReport(agent_name=agent.name)
        for scenario in scenarios:
            report.results.append(await self.evaluate_scenario(agent, scenario))
        logger.info(
            "Evaluated %s: %d scenario(s), pass rate %.2f",
            agent.name,
            len(report.results),
            report.pass_rate,
        )
        return report


__all__ = [
    "EvalReport",
    "EvalScenario",
    "Evaluator",
    "ScenarioResult",
    "load_scenarios",
    "response_match_score",
    "tool_trajectory_score",
]
