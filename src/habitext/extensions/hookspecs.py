"""Pluggy hook specification for contributing extensions.

A plugin contributes extensions by implementing one boot-time hook that
returns descriptors. Lifecycle hooks themselves live on the descriptors
and are dispatched by :class:`~habitext.extensions.dispatcher.EventDispatcher`,
not by pluggy.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pluggy

if TYPE_CHECKING:
    from habitext.extensions.descriptor import ExtensionDescriptor

PROJECT_NAME = "habitext"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class HabitextHookSpec:
    """Hook specifications for the habitext plugin system."""

    @hookspec
    def habitext_extensions(
        self,
        config: dict[str, dict[str, Any]],
    ) -> list[ExtensionDescriptor] | None:
        """Return the extension descriptors this plugin provides.

        *config* maps extension names to configuration overrides from
        ``[extensions.config]``. Implementations may omit the parameter.
        """
