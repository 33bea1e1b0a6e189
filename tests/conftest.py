"""Pytest configuration helpers."""

from __future__ import annotations

from typing import Iterator

import pytest

from agentflow.memory import SessionMemory
from agentflow.tools import ToolRegistry


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Iterator[None]:
    """Clear cached settings between tests."""
    from agentflow import settings

    settings.get_settings.cache_clear()
    try:
        yield
    finally:
        settings.get_settings.cache_clear()


@pytest.fixture
def memory() -> SessionMemory:
    return SessionMemory()


@pytest.fixture
def tools() -> ToolRegistry:
    return ToolRegistry()


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register custom CLI options."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run tests marked as slow (defaults to skipping them).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip slow tests unless explicitly enabled."""
    if config.getoption("--run-slow"):
        return

    mark_expr = getattr(config.option, "markexpr", "") or ""
    if "slow" in mark_expr:
        return

    skip_slow = pytest.mark.skip(reason="slow tests require --run-slow or -m slow")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)
