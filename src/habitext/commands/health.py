"""Command: aggregated extension health."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from habitext.commands import with_examples

if TYPE_CHECKING:
    from habitext.commands._context import AppContext


@with_examples("habitext health", "habitext --json health")
@click.command()
@click.pass_obj
def health(app: AppContext) -> None:
    """Run every extension's health check. Exits 1 when any is unhealthy."""
    app.emit(app.extension_service().health())
