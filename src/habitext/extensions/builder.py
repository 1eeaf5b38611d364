"""Fluent construction of extension descriptors.

The builder is a convenience layer only: it produces the same
:class:`ExtensionDescriptor` a caller could write by hand and adds no
wrapping around hooks. Failure isolation lives in the dispatcher, so a
built extension and a hand-built one behave identically.

Usage::

    builder = ExtensionBuilder("counter")
    data = builder.data
    counter = (
        builder.set_metadata(version="1.2.0", description="Counts completions")
        .for_types("count", "simple")
        .on_created(lambda event: data.seed(count=0))
        .on_completed(lambda event: data.patch(count=data.get(event.habit).get("count", 0) + 1))
        .build()
    )
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Self

from habitext.domain.events import EventKind
from habitext.domain.habits import Habit
from habitext.domain.results import Patch, Seed
from habitext.extensions.descriptor import ALL_TYPES, ExtensionDescriptor, Hook, normalize_types
from habitext.extensions.errors import RegistrationError

INTEGRATIONS_ROOT = "integrations"


class DataManager:
    """Reads and writes scoped to one extension's integrations namespace.

    Hook bodies use this instead of hardcoding ``integrations.<name>`` paths.
    """

    def __init__(self, extension_name: str) -> None:
        self._name = extension_name

    @property
    def name(self) -> str:
        return self._name

    @property
    def root(self) -> str:
        """Fully qualified path of the namespace itself."""
        return f"{INTEGRATIONS_ROOT}.{self._name}"

    def path(self, *parts: str) -> str:
        """Fully qualified dotted path under the namespace.

        Examples:
            >>> DataManager("mood").path("settings", "default")
            'integrations.mood.settings.default'
        """
        return ".".join((self.root, *parts))

    def get(self, habit: Habit) -> dict[str, Any]:
        """Current namespace content for *habit* (a copy; ``{}`` when absent)."""
        return habit.namespace(self._name)

    def seed(self, data: Mapping[str, Any] | None = None, **fields: Any) -> Seed:
        """Initial namespace content, replacing anything already stored."""
        return Seed(blob={**(data or {}), **fields})

    def patch(self, values: Mapping[str, Any] | None = None, **fields: Any) -> Patch:
        """Independent field-sets, one per key, each relative to the namespace."""
        merged = {**(values or {}), **fields}
        return Patch(values={self.path(key): value for key, value in merged.items()})

    def replace(self, current: Mapping[str, Any], **changes: Any) -> Patch:
        """Write ``current`` overlaid with ``changes`` as the whole namespace."""
        return Patch(values={self.root: {**current, **changes}})


class ExtensionBuilder:
    """Chainable builder for :class:`ExtensionDescriptor`."""

    def __init__(self, name: str = "") -> None:
        self._name = name
        self._metadata: dict[str, str] = {"version": "1.0.0", "description": "", "author": ""}
        self._types: frozenset[str] = frozenset({ALL_TYPES})
        self._config: dict[str, Any] = {}
        self._hooks: dict[EventKind, Hook] = {}
        self._endpoints: dict[str, Callable[..., Any]] = {}
        self._actions: dict[str, Callable[..., Any]] = {}
        self._health_check: Callable[[], Any] | None = None
        self._data = DataManager(name)

    @property
    def data(self) -> DataManager:
        """Namespace-scoped data helper for this extension's hooks."""
        return self._data

    def set_metadata(
        self,
        *,
        name: str | None = None,
        version: str | None = None,
        description: str | None = None,
        author: str | None = None,
    ) -> Self:
        if name is not None:
            self._name = name
            self._data._name = name
        for key, value in (("version", version), ("description", description), ("author", author)):
            if value is not None:
                self._metadata[key] = value
        return self

    def for_types(self, *types: str) -> Self:
        self._types = normalize_types(types)
        return self

    def with_config(self, config: Mapping[str, Any]) -> Self:
        self._config = dict(config)
        return self

    def on(self, kind: EventKind | str, handler: Hook) -> Self:
        """Bind *handler* to an event kind. Rebinding replaces the handler."""
        try:
            event_kind = EventKind(kind)
        except ValueError as exc:
            msg = f"Unknown hook {kind!r}"
            raise RegistrationError(msg, extension=self._name) from exc
        self._hooks[event_kind] = handler
        return self

    def on_created(self, handler: Hook) -> Self:
        return self.on(EventKind.CREATED, handler)

    def on_completed(self, handler: Hook) -> Self:
        return self.on(EventKind.COMPLETED, handler)

    def on_updated(self, handler: Hook) -> Self:
        return self.on(EventKind.UPDATED, handler)

    def on_deleted(self, handler: Hook) -> Self:
        return self.on(EventKind.DELETED, handler)

    def add_endpoint(self, name: str, handler: Callable[..., Any]) -> Self:
        self._endpoints[name] = handler
        return self

    def add_action(self, name: str, handler: Callable[..., Any]) -> Self:
        self._actions[name] = handler
        return self

    def with_health_check(self, check: Callable[[], Any]) -> Self:
        self._health_check = check
        return self

    def build(self) -> ExtensionDescriptor:
        """Produce the descriptor. Raises RegistrationError if no name was set."""
        if not self._name:
            msg = "Extension name is required"
            raise RegistrationError(msg)
        return ExtensionDescriptor(
            name=self._name,
            version=self._metadata["version"],
            description=self._metadata["description"],
            author=self._metadata["author"],
            supported_types=self._types,
            hooks=self._hooks,
            config=self._config,
            endpoints=self._endpoints,
            actions=self._actions,
            health_check=self._health_check,
        )


def create_simple_extension(
    name: str,
    *,
    metadata: Mapping[str, str] | None = None,
    types: tuple[str, ...] | None = None,
    config: Mapping[str, Any] | None = None,
    hooks: Mapping[EventKind | str, Hook] | None = None,
    endpoints: Mapping[str, Callable[..., Any]] | None = None,
    actions: Mapping[str, Callable[..., Any]] | None = None,
    health_check: Callable[[], Any] | None = None,
) -> ExtensionDescriptor:
    """One-call shortcut over :class:`ExtensionBuilder` for small extensions."""
    builder = ExtensionBuilder(name)
    if metadata:
        builder.set_metadata(**metadata)
    if types:
        builder.for_types(*types)
    if config is not None:
        builder.with_config(config)
    for kind, handler in (hooks or {}).items():
        builder.on(kind, handler)
    for endpoint_name, handler in (endpoints or {}).items():
        builder.add_endpoint(endpoint_name, handler)
    for action_name, handler in (actions or {}).items():
        builder.add_action(action_name, handler)
    if health_check is not None:
        builder.with_health_check(health_check)
    return builder.build()
