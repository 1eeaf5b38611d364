"""Subcommand modules for habitext.

Provides register_commands() which uses deferred imports to keep
``habitext --help`` fast, and with_examples() for on-demand usage text.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

import click

C = TypeVar("C", bound=click.Command)


def with_examples(*lines: str) -> Callable[[C], C]:
    """Add an eager ``--examples`` flag that prints *lines* and exits.

    Apply above the ``@click.command``/``@click.group`` decorator. ``--help``
    stays short; examples are printed indented under the command path.
    """

    def show(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        for line in lines:
            click.echo(f"  {line}")
        ctx.exit(0)

    def decorate(cmd: C) -> C:
        cmd.params.append(
            click.Option(
                ["--examples"],
                is_flag=True,
                expose_value=False,
                is_eager=True,
                callback=show,
                help="Show usage examples.",
            )
        )
        return cmd

    return decorate


def register_commands(cli: click.Group) -> None:
    """Register command groups and standalone commands on the root CLI group."""
    from habitext.commands.extensions import extensions
    from habitext.commands.health import health

    cli.add_command(extensions)
    cli.add_command(health)
