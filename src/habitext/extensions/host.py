"""ExtensionHost: the process-wide wiring of the extension core.

Owns the registry, the dispatcher, the health aggregator, and (lazily)
the integration store. Built once from :class:`HabitextSettings`; outer
layers receive the host and never construct the pieces themselves.

Boot order: built-in plugins are registered first, then entry-point and
local-directory plugins are discovered, then every contributed
descriptor is registered. A RegistrationError aborts boot.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Self

from habitext.extensions.dispatcher import EventDispatcher
from habitext.extensions.health import HealthAggregator
from habitext.extensions.loader import ExtensionLoader, LoadReport
from habitext.extensions.registry import ExtensionRegistry

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from habitext.config.settings import HabitextSettings
    from habitext.infrastructure.store import IntegrationStore

logger = logging.getLogger(__name__)


class ExtensionHost:
    """Registry, dispatcher, health aggregator, and store for one process."""

    def __init__(self, settings: HabitextSettings, *, engine: Engine | None = None) -> None:
        self._settings = settings
        self._registry = ExtensionRegistry()
        self._engine = engine
        self._store: IntegrationStore | None = None
        self._dispatcher: EventDispatcher | None = None
        self._health: HealthAggregator | None = None
        self._load_report: LoadReport | None = None

    # ------------------------------------------------------------------
    # Boot
    # ------------------------------------------------------------------

    def load_extensions(self, *, plugins: Iterable[object] = ()) -> LoadReport:
        """Discover plugins and register their extensions.

        *plugins* are extra plugin objects registered alongside the
        built-ins (applications and tests use this for in-process plugins).

        Raises:
            RegistrationError: a contributed descriptor is invalid or duplicate.
        """
        if self._load_report is not None:
            return self._load_report

        loader = ExtensionLoader()
        if self._settings.extensions.builtins:
            from habitext.extensions.builtins import BUILTIN_PLUGINS

            for plugin_cls in BUILTIN_PLUGINS:
                loader.register_plugin(plugin_cls(), name=f"{plugin_cls.__name__}-builtin")
        for plugin in plugins:
            loader.register_plugin(plugin)
        loader.discover(local_dir=self._settings.local_extensions_dir)

        self._load_report = loader.load(
            self._registry,
            enabled=self._settings.extensions.enabled,
            config=self._settings.extensions.config,
        )
        return self._load_report

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def settings(self) -> HabitextSettings:
        return self._settings

    @property
    def registry(self) -> ExtensionRegistry:
        return self._registry

    @property
    def load_report(self) -> LoadReport | None:
        return self._load_report

    @property
    def dispatcher(self) -> EventDispatcher:
        if self._dispatcher is None:
            self._dispatcher = EventDispatcher(
                self._registry,
                hook_timeout=self._settings.dispatch.hook_timeout,
                max_workers=self._settings.dispatch.max_workers,
            )
        return self._dispatcher

    @property
    def health(self) -> HealthAggregator:
        if self._health is None:
            self._health = HealthAggregator(
                self._registry,
                timeout=self._settings.health.timeout,
                max_workers=self._settings.health.max_workers,
            )
        return self._health

    @property
    def store(self) -> IntegrationStore:
        """The integration store (database created on first access)."""
        if self._store is None:
            from habitext.infrastructure.database.engine import init_database
            from habitext.infrastructure.database.schema import metadata
            from habitext.infrastructure.store import IntegrationStore

            if self._engine is None:
                self._engine = init_database(self._settings.db_path)
            else:
                metadata.create_all(self._engine)
            self._store = IntegrationStore(self._engine)
        return self._store

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._dispatcher is not None:
            self._dispatcher.shutdown()
            self._dispatcher = None
        if self._health is not None:
            self._health.shutdown()
            self._health = None
        if self._engine is not None:
            self._engine.dispose()
        logger.debug("Extension host closed")

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
