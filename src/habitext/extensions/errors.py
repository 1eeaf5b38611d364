"""Extension error taxonomy.

Only RegistrationError ever reaches a caller: it is raised at boot and
must stop startup. Every other error is caught where it happens, logged,
and surfaced through dispatch results or the health report.
"""

from __future__ import annotations


class ExtensionError(Exception):
    """Base class for all extension-subsystem errors."""

    def __init__(self, message: str, *, extension: str | None = None) -> None:
        super().__init__(message)
        self.extension = extension


class RegistrationError(ExtensionError):
    """A descriptor is invalid and cannot be registered."""


class DuplicateExtensionError(RegistrationError):
    """An extension with the same name is already registered."""


class HookExecutionError(ExtensionError):
    """A hook raised, returned an invalid result, or could not be run."""


class HookTimeoutError(HookExecutionError):
    """A hook did not finish before the dispatch deadline."""


class MergeError(ExtensionError):
    """An extension's write could not be merged into its namespace."""


class HealthCheckError(ExtensionError):
    """A health check raised, timed out, or returned garbage."""
