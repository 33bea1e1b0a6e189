"""Step callables referenced by the sample catalog agents."""

from __future__ import annotations

from typing import Any


def normalize(value: Any) -> str:
    return " ".join(str(value).split()).lower()


def word_count(value: str) -> int:
    return len(value.split())


def double(value: str) -> str:
    return value + value


def first_word(value: str) -> str:
    words = value.split()
    return words[0] if words else ""


def count_runs(value: Any, state: dict[str, Any]) -> tuple[Any, dict[str, Any]]:
    """Pass ``value`` through while counting runs in session state."""
    runs = state.get("runs", 0) + 1
    return value, {"runs": runs}


def needs_more(output: str, iteration: int, state: dict[str, Any]) -> bool:
    return len(output) < 12
