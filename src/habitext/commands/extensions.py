"""Command group: inspect registered extensions."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from habitext.commands import with_examples

if TYPE_CHECKING:
    from habitext.commands._context import AppContext


@with_examples(
    "habitext extensions list",
    "habitext extensions list --type count",
    "habitext extensions show streakTracker",
    "habitext --json extensions stats",
)
@click.group()
def extensions() -> None:
    """Inspect registered extensions."""


@extensions.command("list")
@click.option("--type", "habit_type", default=None, help="Only extensions applicable to TYPE.")
@click.pass_obj
def list_cmd(app: AppContext, habit_type: str | None) -> None:
    """List registered extensions in registration order."""
    app.emit(app.extension_service().list_extensions(habit_type))


@extensions.command("show")
@click.argument("name")
@click.pass_obj
def show(app: AppContext, name: str) -> None:
    """Show one extension's metadata, hooks, endpoints and actions."""
    app.emit(app.extension_service().get_extension(name))


@extensions.command("stats")
@click.pass_obj
def stats(app: AppContext) -> None:
    """Registry statistics: total and per-type coverage."""
    app.emit(app.extension_service().stats())
