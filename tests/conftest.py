"""Shared pytest fixtures for habitext tests."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from habitext.domain.habits import CompletionEntry, Habit, User
from habitext.extensions.dispatcher import EventDispatcher
from habitext.extensions.registry import ExtensionRegistry
from habitext.infrastructure.database.engine import init_database
from habitext.infrastructure.store import IntegrationStore


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def registry() -> ExtensionRegistry:
    return ExtensionRegistry()


@pytest.fixture
def dispatcher(registry: ExtensionRegistry) -> Iterator[EventDispatcher]:
    """Dispatcher over the shared ``registry`` with a short hook deadline."""
    d = EventDispatcher(registry, hook_timeout=1.0, max_workers=4)
    try:
        yield d
    finally:
        d.shutdown()


@pytest.fixture
def db_engine(tmp_path: Path) -> Iterator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path / ".habitext" / "habitext.db")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def store(db_engine: Engine) -> IntegrationStore:
    return IntegrationStore(db_engine)


@pytest.fixture
def user() -> User:
    return User(id="u1", name="Ada")


@pytest.fixture
def habit() -> Habit:
    return Habit(id="h1", type="simple", name="Read", user_id="u1")


@pytest.fixture
def entry() -> CompletionEntry:
    return CompletionEntry(date="2024-03-10")


@pytest.fixture
def _isolated_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run in an empty project directory with no inherited configuration.

    Use via ``@pytest.mark.usefixtures("_isolated_project")`` on CLI tests.
    """
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("HABITEXT_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Undo handler changes made by ``configure_logging`` during CLI tests."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
