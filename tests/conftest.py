"""
Shared pytest fixtures for widetable tests.

This module provides:
- A recording fake ``QueryExecutor`` with scriptable catalog rows
- Descriptor-cache, settings-cache and logging isolation between tests
- Sample record types used across test modules
"""

import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any

import pytest
import structlog

# Ensure widetable package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from widetable import reflect, settings
from widetable.settings import WidetableSettings


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolate_state(monkeypatch: pytest.MonkeyPatch):
    """Fresh descriptor cache, settings and logging config for every test."""
    for name in [
        "WIDETABLE_LOG_LEVEL",
        "WIDETABLE_LOG_FORMAT",
        "WIDETABLE_DEBUG",
        "WIDETABLE_TABLES_QUERY",
        "WIDETABLE_TABLES_COLUMN",
        "WIDETABLE_HOSTS",
        "WIDETABLE_PORT",
        "WIDETABLE_USERNAME",
        "WIDETABLE_PASSWORD",
        "WIDETABLE_KEYSPACE",
    ]:
        monkeypatch.delenv(name, raising=False)
    reflect.clear_cache()
    settings._settings_cache.clear()
    yield
    reflect.clear_cache()
    settings._settings_cache.clear()
    structlog.reset_defaults()


# =============================================================================
# Fake Executor
# =============================================================================


class FakeExecutor:
    """In-memory ``QueryExecutor`` that records every call.

    ``tables`` is returned by catalog queries as ``columnfamily_name`` rows.
    Set ``fail_with`` to make every call raise that exception.
    """

    def __init__(self, tables: list[str] | None = None):
        self.tables = list(tables or [])
        self.executed: list[tuple[str, tuple[Any, ...]]] = []
        self.queries: list[tuple[str, tuple[Any, ...]]] = []
        self.fail_with: Exception | None = None

    def execute(self, statement: str, *params: Any) -> None:
        self.executed.append((statement, params))
        if self.fail_with is not None:
            raise self.fail_with
        prefix = "DROP TABLE IF EXISTS "
        if statement.startswith(prefix):
            table = statement[len(prefix):].split(".", 1)[-1]
            self.tables = [t for t in self.tables if t.lower() != table.lower()]

    def query(self, statement: str, *params: Any) -> list[dict[str, Any]]:
        self.queries.append((statement, params))
        if self.fail_with is not None:
            raise self.fail_with
        return [{"columnfamily_name": name} for name in self.tables]


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def test_settings() -> WidetableSettings:
    return WidetableSettings(_env_file=None)


# =============================================================================
# Sample Records
# =============================================================================


@dataclass
class User:
    id: str = ""
    name: str = ""
    age: int = 0
    email: str = field(default="", metadata={"cql": "email_address;null"})


@dataclass
class Event:
    id: str = ""
    ts: datetime = datetime.min
    owner: str = ""
    payload: Annotated[str, "body;null"] = ""


@pytest.fixture
def user_type() -> type:
    return User


@pytest.fixture
def event_type() -> type:
    return Event
