"""Tests for structlog configuration."""

from __future__ import annotations

import json
import logging
from collections.abc import Generator
from typing import Any

import pytest
import structlog

from habitext.config.logging import ExtensionLevelFilter, configure_logging
from habitext.domain.events import EventKind, HabitCompleted
from habitext.domain.habits import CompletionEntry, Habit, User
from habitext.extensions.descriptor import ExtensionDescriptor
from habitext.extensions.dispatcher import EventDispatcher
from habitext.extensions.registry import ExtensionRegistry


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Restore root logger state after each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    pkg = logging.getLogger("habitext")
    pkg_level = pkg.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    pkg.setLevel(pkg_level)
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger("habitext").level == logging.DEBUG
        assert logging.getLogger().level == logging.WARNING

    def test_non_verbose_sets_warning(self) -> None:
        configure_logging(verbose=False)
        assert logging.getLogger("habitext").level == logging.WARNING

    def test_json_mode_output(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        log = structlog.get_logger("habitext.test")
        log.warning("extension.hook_failed", extension="moodTracker")
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["event"] == "extension.hook_failed"
        assert parsed["extension"] == "moodTracker"
        assert parsed["level"] == "warning"
        assert parsed["logger"] == "habitext.test"
        assert "timestamp" in parsed

    def test_stdlib_logger_shares_handler(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        logging.getLogger("habitext.extensions.loader").warning("Failed to load %s", "x")
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["event"] == "Failed to load x"
        assert parsed["logger"] == "habitext.extensions.loader"

    def test_quiet_mode_drops_debug(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=False, log_json=True)
        logging.getLogger("habitext.extensions.host").debug("hidden")
        assert capfd.readouterr().err == ""


def _json_lines(err: str) -> list[dict[str, Any]]:
    return [json.loads(line) for line in err.strip().splitlines()]


class TestExtensionAttribution:
    def test_extension_level_drops_quieter_extension_events(
        self, capfd: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging(verbose=True, log_json=True, extension_level="error")
        log = structlog.get_logger("habitext.extensions.dispatcher")
        log.warning("extension.hook_failed", extension="noisy")
        log.warning("store.slow")
        log.error("extension.hook_failed", extension="broken")

        lines = _json_lines(capfd.readouterr().err)

        assert [(line["event"], line.get("extension")) for line in lines] == [
            ("store.slow", None),
            ("extension.hook_failed", "broken"),
        ]

    def test_unknown_level_is_rejected(self) -> None:
        with pytest.raises(ValueError, match="loud"):
            ExtensionLevelFilter("loud")

    def test_hook_logs_carry_dispatch_context(
        self, capfd: pytest.CaptureFixture[str], registry: ExtensionRegistry, habit: Habit
    ) -> None:
        configure_logging(log_json=True)
        hook_log = structlog.get_logger("acme.streaks")

        def chatty(event: HabitCompleted) -> None:
            hook_log.warning("acme.note")
            logging.getLogger("acme.streaks").warning("plain note")

        registry.register(ExtensionDescriptor(name="acme", hooks={EventKind.COMPLETED: chatty}))
        event = HabitCompleted(
            habit=habit, entry=CompletionEntry(date="2024-03-10"), user=User(id="u1")
        )
        with EventDispatcher(registry) as dispatcher:
            dispatcher.dispatch(event)

        lines = {line["event"]: line for line in _json_lines(capfd.readouterr().err)}
        for name in ("acme.note", "plain note"):
            assert lines[name]["extension"] == "acme"
            assert lines[name]["habit_id"] == "h1"
            assert lines[name]["event_kind"] == "completed"
        assert structlog.contextvars.get_contextvars() == {}
