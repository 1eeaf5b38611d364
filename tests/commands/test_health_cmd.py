"""Tests for the ``health`` command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from habitext.cli import cli

_PROBE_PLUGIN_SRC = """\
from habitext.extensions import ExtensionDescriptor, hookimpl


class ProbePlugin:
    @hookimpl
    def habitext_extensions(self):
        return [
            ExtensionDescriptor(name="steady", health_check=lambda: {"status": "healthy"}),
            ExtensionDescriptor(name="{name}", health_check=lambda: {answer}),
        ]
"""


def _install_probe(root: Path, name: str, answer: str) -> None:
    plugins = root / "plugins"
    plugins.mkdir()
    source = _PROBE_PLUGIN_SRC.replace("{name}", name).replace("{answer}", answer)
    (plugins / f"{name}_probe.py").write_text(source, encoding="utf-8")
    (root / "habitext.toml").write_text(
        '[extensions]\nbuiltins = false\nlocal_dir = "plugins"\n', encoding="utf-8"
    )


@pytest.mark.usefixtures("_isolated_project")
class TestHealthCommand:
    def test_builtins_healthy(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["health"])
        assert result.exit_code == 0
        assert "overall: healthy" in result.stdout
        assert "streakTracker" in result.stdout

    def test_json(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "health"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["data"]["overall"] == "healthy"
        assert set(data["data"]["extensions"]) == {"streakTracker", "moodTracker"}

    def test_unhealthy_exits_nonzero(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        _install_probe(tmp_path, "flaky", "False")

        result = cli_runner.invoke(cli, ["health"])

        assert result.exit_code == 1
        assert result.stdout == ""
        assert "flaky" in result.stderr
        assert "overall: unhealthy" in result.stderr

    def test_degraded_warns(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        _install_probe(tmp_path, "laggy", '"degraded"')

        result = cli_runner.invoke(cli, ["health"])

        assert result.exit_code == 0
        assert "overall: degraded" in result.stdout
        assert "WARNING: Extension laggy is degraded" in result.stderr
