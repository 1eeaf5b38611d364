"""Lifecycle event kinds and payloads.

The owning CRUD service emits one of these after its own mutation commits.
Each payload is tagged by ``kind`` so a LifecycleEvent can be validated
from plain data as a discriminated union.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, computed_field

from habitext.domain.habits import CompletionEntry, Habit, User
from habitext.domain.habits import changed_fields as diff_fields


class EventKind(StrEnum):
    """Lifecycle events an extension hook can be bound to."""

    CREATED = "created"
    COMPLETED = "completed"
    UPDATED = "updated"
    DELETED = "deleted"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class _EventBase(BaseModel):
    model_config = {"frozen": True}

    habit: Habit
    occurred_at: str = Field(default_factory=_now_iso)


class HabitCreated(_EventBase):
    """A habit was created. Hooks typically answer with a Seed."""

    kind: Literal[EventKind.CREATED] = EventKind.CREATED
    user: User


class HabitCompleted(_EventBase):
    """A completion entry was recorded for a habit."""

    kind: Literal[EventKind.COMPLETED] = EventKind.COMPLETED
    entry: CompletionEntry
    user: User

    @computed_field  # type: ignore[prop-decorator]
    @property
    def completion_date(self) -> str:
        return self.entry.date


class HabitUpdated(_EventBase):
    """A habit's own fields changed. ``previous`` is the pre-update snapshot."""

    kind: Literal[EventKind.UPDATED] = EventKind.UPDATED
    previous: Habit
    user: User | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def changed_fields(self) -> list[str]:
        return diff_fields(self.previous, self.habit)


class HabitDeleted(_EventBase):
    """A habit was deleted. Its integration records go with it."""

    kind: Literal[EventKind.DELETED] = EventKind.DELETED
    user: User | None = None


LifecycleEvent = Annotated[
    HabitCreated | HabitCompleted | HabitUpdated | HabitDeleted,
    Field(discriminator="kind"),
]
