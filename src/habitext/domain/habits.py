"""Habit snapshot models passed to extension hooks.

Snapshots are frozen: hooks observe the committed state of a habit and
describe changes through a HookResult, never by mutating the snapshot.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# Fields compared to derive HabitUpdated.changed_fields.
TRACKED_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "category",
    "type",
    "target_value",
    "unit",
    "color",
    "is_active",
)


class User(BaseModel):
    """The user acting on a habit."""

    model_config = {"frozen": True}

    id: str
    name: str = ""


class Habit(BaseModel):
    """Committed state of one tracked habit.

    ``type`` is the entity-type tag extensions scope themselves to
    (``simple``, ``count``, ``time``, ...). ``integrations`` maps an
    extension name to that extension's opaque namespace content.
    """

    model_config = {"frozen": True}

    id: str
    type: str = "simple"
    name: str = ""
    description: str = ""
    category: str = "Custom"
    target_value: float = 1
    unit: str = "times"
    color: str = "#6C63FF"
    is_active: bool = True
    user_id: str | None = None
    integrations: dict[str, Any] = Field(default_factory=dict)

    def namespace(self, extension_name: str) -> dict[str, Any]:
        """Return a copy of one extension's namespace (``{}`` when absent)."""
        value = self.integrations.get(extension_name)
        if isinstance(value, dict):
            return dict(value)
        return {}


class CompletionEntry(BaseModel):
    """A single completion record for a habit on one date."""

    model_config = {"frozen": True, "extra": "allow"}

    date: str  # YYYY-MM-DD
    completed: bool = True
    value: float | None = None


def changed_fields(previous: Habit, current: Habit) -> list[str]:
    """Names of tracked fields whose value differs between two snapshots.

    Examples:
        >>> a = Habit(id="h1", name="Run")
        >>> changed_fields(a, a.model_copy(update={"name": "Jog", "unit": "km"}))
        ['name', 'unit']
    """
    return [f for f in TRACKED_FIELDS if getattr(previous, f) != getattr(current, f)]
