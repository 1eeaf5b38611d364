"""Tests for the ``extensions`` command group and the root CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from habitext import __version__
from habitext.cli import cli

_SHADOW_PLUGIN_SRC = """\
from habitext.extensions import ExtensionDescriptor, hookimpl


class ShadowPlugin:
    @hookimpl
    def habitext_extensions(self):
        return [ExtensionDescriptor(name="streakTracker")]
"""


@pytest.mark.usefixtures("_isolated_project")
class TestRoot:
    def test_no_subcommand_prints_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, [])
        assert result.exit_code == 0
        assert "extensions" in result.stdout
        assert "health" in result.stdout

    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    @pytest.mark.parametrize(
        ("args", "expected"),
        [
            (["extensions", "--help"], ["list", "show", "stats"]),
            (["extensions", "list", "--help"], ["--type"]),
            (["extensions", "show", "--help"], ["NAME"]),
            (["health", "--help"], ["unhealthy"]),
        ],
    )
    def test_help(self, cli_runner: CliRunner, args: list[str], expected: list[str]) -> None:
        result = cli_runner.invoke(cli, args)
        assert result.exit_code == 0
        for keyword in expected:
            assert keyword in result.stdout

    @pytest.mark.parametrize(
        ("args", "expected"),
        [
            (["extensions", "--examples"], ["habitext extensions show streakTracker"]),
            (["health", "--examples"], ["habitext --json health"]),
        ],
    )
    def test_examples(self, cli_runner: CliRunner, args: list[str], expected: list[str]) -> None:
        result = cli_runner.invoke(cli, args)
        assert result.exit_code == 0
        for keyword in expected:
            assert keyword in result.stdout


@pytest.mark.usefixtures("_isolated_project")
class TestExtensionsList:
    def test_human_output(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["extensions", "list"])
        assert result.exit_code == 0
        assert "streakTracker" in result.stdout
        assert "moodTracker" in result.stdout
        assert "2 extensions" in result.stdout

    def test_json_output(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "extensions", "list"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["ok"] is True
        assert data["op"] == "list_extensions"
        assert [i["name"] for i in data["data"]["items"]] == ["streakTracker", "moodTracker"]

    def test_builtins_disabled_by_config(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        (tmp_path / "habitext.toml").write_text("[extensions]\nbuiltins = false\n")
        result = cli_runner.invoke(cli, ["--json", "extensions", "list"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["data"]["count"] == 0

    def test_type_filter(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "extensions", "list", "--type", "count"])
        assert json.loads(result.stdout)["data"]["count"] == 2


@pytest.mark.usefixtures("_isolated_project")
class TestExtensionsShow:
    def test_show(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["extensions", "show", "moodTracker"])
        assert result.exit_code == 0
        assert "moodTracker" in result.stdout
        assert "get_mood_summary" in result.stdout

    def test_show_missing(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "extensions", "show", "ghost"])
        assert result.exit_code == 1
        assert result.stdout == ""
        assert "NOT_FOUND" in result.stderr

    def test_show_missing_human(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["extensions", "show", "ghost"])
        assert result.exit_code == 1
        assert "ERROR" in result.stderr
        assert "ghost" in result.stderr


@pytest.mark.usefixtures("_isolated_project")
class TestExtensionsStats:
    def test_stats(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "extensions", "stats"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["data"] == {"total": 2, "by_type": {"all": 2}}

    def test_stats_human(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["extensions", "stats"])
        assert result.exit_code == 0
        assert "total: 2" in result.stdout


@pytest.mark.usefixtures("_isolated_project")
class TestBootFailure:
    def test_duplicate_extension_aborts(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        plugins = tmp_path / "plugins"
        plugins.mkdir()
        (plugins / "shadow.py").write_text(_SHADOW_PLUGIN_SRC, encoding="utf-8")
        (tmp_path / "habitext.toml").write_text('[extensions]\nlocal_dir = "plugins"\n')

        result = cli_runner.invoke(cli, ["extensions", "list"])

        assert result.exit_code == 1
        assert "Extension registration failed" in result.stderr
