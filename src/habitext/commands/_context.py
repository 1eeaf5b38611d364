"""AppContext: shared Click context for all commands.

Created once by the root CLI group and handed to subcommands via
``@click.pass_obj``. The extension host is built lazily so ``--help``
and ``--version`` never load plugins.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from habitext.output.formatters import format_result

if TYPE_CHECKING:
    from habitext.config.settings import HabitextSettings
    from habitext.extensions.host import ExtensionHost
    from habitext.services.extensions import ExtensionService
    from habitext.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: HabitextSettings) -> None:
        self.settings = settings
        self._host: ExtensionHost | None = None

        from habitext.config.logging import configure_logging

        configure_logging(
            verbose=settings.verbose,
            log_json=settings.log_json,
            extension_level=settings.logging.extension_level,
        )

    @property
    def host(self) -> ExtensionHost:
        """The extension host, with extensions loaded on first access."""
        if self._host is None:
            from habitext.extensions.errors import RegistrationError
            from habitext.extensions.host import ExtensionHost

            host = ExtensionHost(self.settings)
            try:
                host.load_extensions()
            except RegistrationError as exc:
                host.close()
                raise click.ClickException(f"Extension registration failed: {exc}") from exc
            ctx = click.get_current_context(silent=True)
            if ctx is not None:
                ctx.call_on_close(host.close)
            self._host = host
        return self._host

    def extension_service(self) -> ExtensionService:
        from habitext.services.extensions import ExtensionService

        return ExtensionService(self.host.registry, self.host.health)

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout. Warnings go to stderr
          unless JSON output already carries them.
        * Failure: writes to stderr, exits with code 1.
        """
        output = format_result(
            result,
            json_output=self.settings.json_output,
            verbose=self.settings.verbose,
        )
        if result.ok:
            click.echo(output)
            if not self.settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
