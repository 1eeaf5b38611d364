"""ExtensionRegistry: append-only store of extension descriptors.

Built once at startup and injected into the dispatcher, the health
aggregator, and any outer layer. There is no removal: an extension is
``Unregistered -> Registered`` for the lifetime of the process.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from collections.abc import Callable, Iterator
from typing import Any

from habitext.domain.events import EventKind
from habitext.extensions.descriptor import ExtensionDescriptor
from habitext.extensions.errors import DuplicateExtensionError, RegistrationError

logger = logging.getLogger(__name__)


class ExtensionRegistry:
    """Ordered, name-keyed collection of validated descriptors."""

    def __init__(self) -> None:
        self._extensions: dict[str, ExtensionDescriptor] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, descriptor: ExtensionDescriptor) -> None:
        """Validate and store *descriptor*.

        Raises:
            RegistrationError: empty name, unknown hook kind, or a hook,
                endpoint, action, or health check that is not callable.
            DuplicateExtensionError: the name is already registered.

        The registry is unchanged when an error is raised.
        """
        _validate(descriptor)
        with self._lock:
            if descriptor.name in self._extensions:
                msg = f"Extension already registered: {descriptor.name}"
                raise DuplicateExtensionError(msg, extension=descriptor.name)
            self._extensions[descriptor.name] = descriptor

        logger.info(
            "Registered extension %s %s (types=%s)",
            descriptor.name,
            descriptor.version,
            ",".join(sorted(descriptor.supported_types)),
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def resolve(self, habit_type: str) -> list[ExtensionDescriptor]:
        """Descriptors that accept *habit_type*, in registration order."""
        return [d for d in self._snapshot() if d.supports(habit_type)]

    def get(self, name: str) -> ExtensionDescriptor | None:
        return self._extensions.get(name)

    def names(self) -> list[str]:
        return [d.name for d in self._snapshot()]

    def stats(self) -> dict[str, Any]:
        """Registry statistics: total count and per-type coverage."""
        by_type: Counter[str] = Counter()
        for descriptor in self._snapshot():
            by_type.update(descriptor.supported_types)
        return {"total": len(self), "by_type": dict(sorted(by_type.items()))}

    def __len__(self) -> int:
        return len(self._extensions)

    def __iter__(self) -> Iterator[ExtensionDescriptor]:
        return iter(self._snapshot())

    def __contains__(self, name: object) -> bool:
        return name in self._extensions

    def _snapshot(self) -> list[ExtensionDescriptor]:
        with self._lock:
            return list(self._extensions.values())


def _validate(descriptor: ExtensionDescriptor) -> None:
    name = descriptor.name
    if not isinstance(name, str) or not name.strip():
        msg = "Extension name must be a non-empty string"
        raise RegistrationError(msg)
    if "." in name:
        msg = f"Extension name must not contain '.': {name!r}"
        raise RegistrationError(msg, extension=name)

    for kind, hook in descriptor.hooks.items():
        if not isinstance(kind, EventKind):
            msg = f"Unknown hook {kind!r} on extension {name}"
            raise RegistrationError(msg, extension=name)
        _require_callable(name, f"hook {kind}", hook)
    for endpoint, fn in descriptor.endpoints.items():
        _require_callable(name, f"endpoint {endpoint}", fn)
    for action, fn in descriptor.actions.items():
        _require_callable(name, f"action {action}", fn)
    if descriptor.health_check is not None:
        _require_callable(name, "health check", descriptor.health_check)


def _require_callable(extension: str, label: str, value: Callable[..., Any] | object) -> None:
    if not callable(value):
        msg = f"Invalid {label} on extension {extension}: not callable"
        raise RegistrationError(msg, extension=extension)
