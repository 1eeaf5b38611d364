"""Extension discovery and loading.

Discovery: entry points (pip-installed) in the ``habitext.extensions``
group via pluggy, plus single-file plugins from a local directory, plus
plugin objects registered directly (the built-ins).

Each plugin's ``habitext_extensions`` hook is called on its own so a plugin
that fails to produce descriptors is logged and skipped. Descriptors that
fail registration are NOT skipped: RegistrationError is fatal at boot.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pluggy
from pydantic import BaseModel, Field

from habitext.extensions.descriptor import ExtensionDescriptor
from habitext.extensions.hookspecs import PROJECT_NAME, HabitextHookSpec

if TYPE_CHECKING:
    from habitext.extensions.registry import ExtensionRegistry

ENTRY_POINT_GROUP = "habitext.extensions"

logger = logging.getLogger(__name__)


class LoadReport(BaseModel):
    """What :meth:`ExtensionLoader.load` registered and what it skipped."""

    model_config = {"frozen": True}

    loaded: list[str] = Field(default_factory=list)
    disabled: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)


class ExtensionLoader:
    """Collects extension descriptors from pluggy plugins."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(HabitextHookSpec)

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly (e.g. built-in plugins)."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def discover(self, *, local_dir: Path | None = None) -> list[str]:
        """Load entry-point plugins and, optionally, single-file local plugins.

        Returns the names of all registered plugins.
        """
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._normalize_plugin_instances()
        if local_dir is not None:
            self._discover_local(local_dir)
        return self.list_plugin_names()

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    def load(
        self,
        registry: ExtensionRegistry,
        *,
        enabled: Iterable[str] | None = None,
        config: dict[str, dict[str, Any]] | None = None,
    ) -> LoadReport:
        """Register every contributed descriptor into *registry*.

        Args:
            registry: Target registry.
            enabled: Optional allow-list of extension names; others are
                recorded as disabled and not registered.
            config: Per-extension configuration overrides passed to plugins.

        Raises:
            RegistrationError: a contributed descriptor is invalid or duplicate.
        """
        allow = set(enabled) if enabled else None
        kwargs: dict[str, Any] = {"config": dict(config or {})}
        loaded: list[str] = []
        disabled: list[str] = []
        failed: dict[str, str] = {}

        for impl in self._pm.hook.habitext_extensions.get_hookimpls():
            plugin_name = impl.plugin_name
            try:
                contributed = impl.function(*(kwargs[arg] for arg in impl.argnames))
                descriptors = _as_descriptors(contributed)
            except Exception as exc:
                logger.warning(
                    "Failed to collect extensions from plugin %s", plugin_name, exc_info=True
                )
                failed[plugin_name] = str(exc) or type(exc).__name__
                continue

            for descriptor in descriptors:
                if allow is not None and descriptor.name not in allow:
                    disabled.append(descriptor.name)
                    continue
                registry.register(descriptor)
                loaded.append(descriptor.name)

        logger.info(
            "Extension loading complete: %d loaded, %d disabled, %d failed",
            len(loaded),
            len(disabled),
            len(failed),
        )
        return LoadReport(loaded=loaded, disabled=disabled, failed=failed)

    # ------------------------------------------------------------------
    # Local directory discovery
    # ------------------------------------------------------------------

    def _discover_local(self, local_dir: Path) -> None:
        """Scan *local_dir* for single-file Python plugins.

        Each ``*.py`` file (excluding ``_``-prefixed names) is loaded as a
        module. Classes defined in it that carry a ``habitext_extensions``
        hookimpl are instantiated and registered.

        A broken local plugin is logged and skipped.
        """
        if not local_dir.is_dir():
            return

        for py_file in sorted(local_dir.glob("*.py")):
            if py_file.name.startswith("_"):
                continue
            module_name = f"habitext_local_extension_{py_file.stem}"
            try:
                spec = importlib.util.spec_from_file_location(module_name, py_file)
                if spec is None or spec.loader is None:
                    logger.warning("Could not create module spec for %s", py_file)
                    continue
                module = importlib.util.module_from_spec(spec)
                sys.modules[module_name] = module
                spec.loader.exec_module(module)
            except Exception:
                logger.warning("Failed to load local plugin %s", py_file, exc_info=True)
                sys.modules.pop(module_name, None)
                continue

            for _attr_name, obj in inspect.getmembers(module, inspect.isclass):
                if obj.__module__ != module_name or not _has_hook_impls(obj):
                    continue
                try:
                    self.register_plugin(obj(), name=f"{module_name}.{obj.__name__}")
                except Exception:
                    logger.warning(
                        "Failed to instantiate plugin class %s from %s",
                        obj.__name__,
                        py_file,
                        exc_info=True,
                    )

    def _normalize_plugin_instances(self) -> None:
        """Replace registered plugin classes with instantiated objects.

        Entry points may name a class; hooks on an unbound class cannot run.
        """
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin) or not _has_hook_impls(plugin):
                continue

            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            try:
                instance = plugin()
            except Exception:
                logger.warning(
                    "Failed to instantiate entry-point plugin %s", plugin_name, exc_info=True
                )
                continue
            self._pm.register(instance, name=plugin_name)
            logger.debug("Instantiated entry-point plugin: %s", plugin_name)


def _as_descriptors(contributed: object) -> list[ExtensionDescriptor]:
    if contributed is None:
        return []
    if isinstance(contributed, ExtensionDescriptor):
        return [contributed]
    items = list(contributed)  # type: ignore[call-overload]
    for item in items:
        if not isinstance(item, ExtensionDescriptor):
            msg = f"Expected ExtensionDescriptor, got {type(item).__name__}"
            raise TypeError(msg)
    return items


def _has_hook_impls(cls: type) -> bool:
    """Whether *cls* has a method decorated with ``@hookimpl``.

    Pluggy's ``HookimplMarker("habitext")`` sets a ``habitext_impl``
    attribute on decorated functions.
    """
    for name in dir(cls):
        if name.startswith("_"):
            continue
        method = getattr(cls, name, None)
        if callable(method) and getattr(method, "habitext_impl", None):
            return True
    return False
