"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import itertools
from collections.abc import Callable
from typing import Any

import pytest


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ambient provenance settings from leaking into tests."""
    monkeypatch.delenv("PROVENANCE_LOCATION", raising=False)
    monkeypatch.delenv("PROVENANCE_DELIMITER", raising=False)
    monkeypatch.delenv("PROVENANCE_CONFIG", raising=False)


@pytest.fixture
def id_factory() -> Callable[[], str]:
    """Return a factory producing node-1, node-2, ..."""
    counter = itertools.count(1)
    return lambda: f"node-{next(counter)}"


@pytest.fixture
def clock() -> Callable[[], int]:
    """Return a clock ticking one millisecond per call."""
    counter = itertools.count(1_700_000_000_000)
    return lambda: next(counter)


@pytest.fixture
def todo_state() -> dict[str, Any]:
    """A small to-do application state."""
    return {
        "user": {"name": "Kiran", "totalTask": 1},
        "todos": [
            {
                "task": "Add unit tests",
                "createdOn": "2024-01-01T00:00:00Z",
                "status": "ONGOING",
                "completedOn": "",
            }
        ],
    }
