"""LifecycleService: the owning service's side of extension dispatch.

Pipeline per event: LOCK → RELOAD → DISPATCH → PERSIST → RESPOND

The habit is locked for the whole cycle so the snapshot handed to hooks
is the latest committed state and no other dispatch for the same habit
can interleave between the read and the write.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from habitext.domain.events import (
    HabitCompleted,
    HabitCreated,
    HabitDeleted,
    HabitUpdated,
)
from habitext.extensions.merger import apply_write_set
from habitext.services.result import ServiceResult

if TYPE_CHECKING:
    from habitext.domain.habits import CompletionEntry, Habit, User
    from habitext.extensions.dispatcher import EventDispatcher, MergeResult
    from habitext.extensions.merger import WriteSet
    from habitext.infrastructure.store import IntegrationStore

    Event = HabitCreated | HabitCompleted | HabitUpdated | HabitDeleted

logger = logging.getLogger(__name__)


class LifecycleService:
    """Turns committed habit mutations into dispatched, persisted extension updates."""

    def __init__(self, dispatcher: EventDispatcher, store: IntegrationStore) -> None:
        self._dispatcher = dispatcher
        self._store = store

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def habit_created(self, habit: Habit, user: User) -> ServiceResult:
        return self.handle(HabitCreated(habit=habit, user=user))

    def habit_completed(self, habit: Habit, entry: CompletionEntry, user: User) -> ServiceResult:
        return self.handle(HabitCompleted(habit=habit, entry=entry, user=user))

    def habit_updated(
        self, habit: Habit, previous: Habit, user: User | None = None
    ) -> ServiceResult:
        return self.handle(HabitUpdated(habit=habit, previous=previous, user=user))

    def habit_deleted(self, habit: Habit, user: User | None = None) -> ServiceResult:
        return self.handle(HabitDeleted(habit=habit, user=user))

    def handle(self, event: Event) -> ServiceResult:
        """Dispatch *event* and persist the merged writes.

        Created and updated events record the habit's own fields first, so
        the store mirrors what the owning service committed. Deleted events
        drop every integration record once hooks have run.
        """
        op = f"habit_{event.kind}"
        habit_id = event.habit.id

        with self._dispatcher.entity_lock(habit_id):
            if isinstance(event, HabitCreated | HabitUpdated):
                self._store.save_habit(_habit_row(event.habit))
            event = self._reload(event)

            if isinstance(event, HabitDeleted):
                result = self._dispatcher.dispatch(event)
                self._store.delete_integrations(habit_id)
                return _respond(op, result, persisted=False)
            result = self._dispatcher.dispatch(event, persist=self._persist)

        return _respond(op, result)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _reload(self, event: Event) -> Event:
        """Swap in the stored integrations so hooks read committed state."""
        row = self._store.get_habit(event.habit.id)
        if row is None:
            return event
        habit = event.habit.model_copy(update={"integrations": row["integrations"]})
        return event.model_copy(update={"habit": habit})

    def _persist(self, write_set: WriteSet) -> None:
        self._store.update_integrations(
            write_set.entity_id,
            lambda current: apply_write_set(current, write_set),
        )


def _habit_row(habit: Habit) -> dict[str, Any]:
    return habit.model_dump(exclude={"integrations"})


def _respond(op: str, result: MergeResult, *, persisted: bool = True) -> ServiceResult:
    warnings = result.warnings()
    for warning in warnings:
        logger.debug("%s: %s", op, warning)
    return ServiceResult(
        ok=True,
        op=op,
        data={
            "habit_id": result.entity_id,
            "extensions": result.invoked,
            "updated": result.updated if persisted else [],
            "failed": sorted(result.failed),
            "timed_out": result.timed_out,
        },
        warnings=warnings,
        meta={"duration_ms": result.duration_ms},
    )
