"""Root CLI group for habitext with global flags and command registration."""

from __future__ import annotations

import click

from habitext import __version__
from habitext.commands import register_commands
from habitext.commands._context import AppContext
from habitext.config.settings import HabitextSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="habitext")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug logs.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """habitext: habit lifecycle extension host."""
    ctx.ensure_object(dict)
    settings = HabitextSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
