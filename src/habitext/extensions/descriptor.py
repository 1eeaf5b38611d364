"""ExtensionDescriptor: the plain data contract every extension fulfils.

A descriptor is created once at boot, registered, and never changes.
Mappings are wrapped in ``MappingProxyType`` so neither the registry nor
a hook can mutate another extension's contract after construction.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from habitext.domain.events import EventKind

ALL_TYPES = "all"

Hook = Callable[[Any], Any]
HealthCheck = Callable[[], Any]


def _freeze(mapping: Mapping[Any, Any] | None) -> Mapping[Any, Any]:
    return MappingProxyType(dict(mapping or {}))


def _coerce_hook_keys(hooks: Mapping[Any, Hook] | None) -> dict[Any, Hook]:
    """Accept ``EventKind`` members or their string values as hook keys.

    Unknown keys are kept as-is so registration can reject them by name.
    """
    coerced: dict[Any, Hook] = {}
    for key, fn in (hooks or {}).items():
        try:
            coerced[EventKind(key)] = fn
        except ValueError:
            coerced[key] = fn
    return coerced


@dataclass(frozen=True)
class ExtensionDescriptor:
    """Everything the core needs to know about one extension.

    Attributes:
        name: Unique key; also the extension's integrations namespace.
        version: Free-form version string.
        supported_types: Habit types this extension handles. ``{"all"}``
            (the default when empty) matches every type.
        hooks: ``EventKind -> callable(event) -> HookResult | None``.
        config: Opaque extension configuration.
        endpoints: Named callables exposed to outer layers.
        actions: Named callables queried for UI actions and analytics.
        health_check: Optional probe; absent means always healthy.
    """

    name: str
    version: str = "1.0.0"
    description: str = ""
    author: str = ""
    supported_types: frozenset[str] = frozenset({ALL_TYPES})
    hooks: Mapping[Any, Hook] = field(default_factory=dict)
    config: Mapping[str, Any] = field(default_factory=dict)
    endpoints: Mapping[str, Callable[..., Any]] = field(default_factory=dict)
    actions: Mapping[str, Callable[..., Any]] = field(default_factory=dict)
    health_check: HealthCheck | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "supported_types", normalize_types(self.supported_types))
        object.__setattr__(self, "hooks", _freeze(_coerce_hook_keys(self.hooks)))
        object.__setattr__(self, "config", _freeze(self.config))
        object.__setattr__(self, "endpoints", _freeze(self.endpoints))
        object.__setattr__(self, "actions", _freeze(self.actions))

    def supports(self, habit_type: str) -> bool:
        """Whether this extension should see events for *habit_type*."""
        return ALL_TYPES in self.supported_types or habit_type in self.supported_types

    def hook_for(self, kind: EventKind) -> Hook | None:
        return self.hooks.get(kind)

    def summary(self) -> dict[str, Any]:
        """JSON-friendly description (no callables)."""
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "author": self.author,
            "supported_types": sorted(self.supported_types),
            "hooks": sorted(str(k) for k in self.hooks),
            "endpoints": sorted(self.endpoints),
            "actions": sorted(self.actions),
            "has_health_check": self.health_check is not None,
            "config": dict(self.config),
        }


def normalize_types(types: Iterable[str] | str | None) -> frozenset[str]:
    """Normalize a type selection to a non-empty frozenset."""
    if types is None:
        return frozenset({ALL_TYPES})
    if isinstance(types, str):
        types = (types,)
    return frozenset(types) or frozenset({ALL_TYPES})
