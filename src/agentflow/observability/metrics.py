"""Lightweight in-process metrics aggregation for agent runs."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict


@dataclass
class AggregatedMetrics:
    """Aggregated counters describing runs and tool usage."""

    runs_total: int = 0
    runs_failed: int = 0
    runs_timed_out: int = 0
    duration_ms_total: float = 0.0
    kind_usage: Dict[str, int] = field(default_factory=dict)
    tool_calls: Dict[str, int] = field(default_factory=dict)
    tool_failures: Dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> dict[str, float | int | dict[str, int]]:
        failure_rate = (self.runs_failed / self.runs_total) if self.runs_total else 0.0
        avg_duration = (self.duration_ms_total / self.runs_total) if self.runs_total else 0.0
        return {
            "runs_total": self.runs_total,
            "runs_failed": self.runs_failed,
            "runs_timed_out": self.runs_timed_out,
            "failure_rate": failure_rate,
            "duration_ms_total": self.duration_ms_total,
            "avg_duration_ms": avg_duration,
            "kind_usage": dict(self.kind_usage),
            "tool_calls": dict(self.tool_calls),
            "tool_failures": dict(self.tool_failures),
        }


class MetricsRegistry:
    """Thread-safe accumulator owned by a runtime."""

    def __init__(self) -> None:
        self._metrics = AggregatedMetrics()
        self._lock = threading.RLock()

    def record_run(
        self,
        kind: str,
        duration_ms: float,
        *,
        ok: bool,
        timed_out: bool = False,
    ) -> None:
        with self._lock:
            self._metrics.runs_total += 1
            if not ok:
                self._metrics.runs_failed += 1
            if timed_out:
                self._metrics.runs_timed_out += 1
            self._metrics.duration_ms_total += max(0.0, duration_ms)
            self._metrics.kind_usage[kind] = self._metrics.kind_usage.get(kind, 0) + 1

    def record_tool_call(self, name: str, *, ok: bool) -> None:
        with self._lock:
            self._metrics.tool_calls[name] = self._metrics.tool_calls.get(name, 0) + 1
            if not ok:
                self._metrics.tool_failures[name] = self._metrics.tool_failures.get(name, 0) + 1

    def snapshot(self) -> AggregatedMetrics:
        with self._lock:
            return AggregatedMetrics(
                runs_total=self._metrics.runs_total,
                runs_failed=self._metrics.runs_failed,
                runs_timed_out=self._metrics.runs_timed_out,
                duration_ms_total=self._metrics.duration_ms_total,
                kind_usage=dict(self._metrics.kind_usage),
                tool_calls=dict(self._metrics.tool_calls),
                tool_failures=dict(self._metrics.tool_failures),
            )

    def reset(self) -> None:
        with self._lock:
            self._metrics = AggregatedMetrics()


__all__ = ["AggregatedMetrics", "MetricsRegistry"]
