"""Tests for lifecycle event payloads, habit snapshots, and hook results."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from habitext.domain.events import (
    EventKind,
    HabitCompleted,
    HabitCreated,
    HabitDeleted,
    HabitUpdated,
    LifecycleEvent,
)
from habitext.domain.habits import CompletionEntry, Habit, User, changed_fields
from habitext.domain.results import NO_UPDATE, HookResult, NoUpdate, Patch, Seed, is_update


class TestHabit:
    def test_namespace_returns_copy(self) -> None:
        habit = Habit(id="h1", integrations={"counter": {"count": 2}})
        ns = habit.namespace("counter")
        ns["count"] = 99
        assert habit.integrations["counter"]["count"] == 2

    def test_namespace_absent_is_empty(self) -> None:
        assert Habit(id="h1").namespace("missing") == {}

    def test_namespace_non_mapping_is_empty(self) -> None:
        assert Habit(id="h1", integrations={"odd": [1, 2]}).namespace("odd") == {}

    def test_snapshot_is_frozen(self) -> None:
        habit = Habit(id="h1")
        with pytest.raises(ValidationError):
            habit.name = "changed"  # type: ignore[misc]

    def test_changed_fields_in_tracked_order(self) -> None:
        before = Habit(id="h1", name="Run", type="simple")
        after = before.model_copy(update={"type": "time", "name": "Jog"})
        assert changed_fields(before, after) == ["name", "type"]

    def test_integrations_are_not_tracked(self) -> None:
        before = Habit(id="h1")
        after = before.model_copy(update={"integrations": {"x": {}}})
        assert changed_fields(before, after) == []


class TestCompletionEntry:
    def test_extra_fields_are_kept(self) -> None:
        entry = CompletionEntry(date="2024-01-01", mood=7)
        assert entry.mood == 7  # type: ignore[attr-defined]

    def test_defaults(self) -> None:
        entry = CompletionEntry(date="2024-01-01")
        assert entry.completed is True
        assert entry.value is None


class TestEvents:
    def test_kinds(self) -> None:
        habit = Habit(id="h1")
        user = User(id="u1")
        assert HabitCreated(habit=habit, user=user).kind is EventKind.CREATED
        assert HabitDeleted(habit=habit).kind is EventKind.DELETED

    def test_completed_exposes_date(self) -> None:
        event = HabitCompleted(
            habit=Habit(id="h1"), entry=CompletionEntry(date="2024-02-29"), user=User(id="u1")
        )
        assert event.completion_date == "2024-02-29"

    def test_updated_derives_changed_fields(self) -> None:
        previous = Habit(id="h1", unit="times")
        event = HabitUpdated(habit=previous.model_copy(update={"unit": "pages"}), previous=previous)
        assert event.changed_fields == ["unit"]
        assert event.user is None

    def test_occurred_at_is_set(self) -> None:
        event = HabitDeleted(habit=Habit(id="h1"))
        assert event.occurred_at.endswith("+00:00")

    def test_validates_from_plain_data(self) -> None:
        adapter = TypeAdapter(LifecycleEvent)
        event = adapter.validate_python(
            {
                "kind": "completed",
                "habit": {"id": "h1", "type": "count"},
                "entry": {"date": "2024-01-02", "value": 3},
                "user": {"id": "u1"},
            }
        )
        assert isinstance(event, HabitCompleted)
        assert event.entry.value == 3

    def test_unknown_kind_rejected(self) -> None:
        adapter = TypeAdapter(LifecycleEvent)
        with pytest.raises(ValidationError):
            adapter.validate_python({"kind": "archived", "habit": {"id": "h1"}})


class TestHookResults:
    def test_is_update(self) -> None:
        assert is_update(Seed(blob={}))
        assert is_update(Patch(values={"a": 1}))
        assert not is_update(Patch())
        assert not is_update(NO_UPDATE)
        assert not is_update(None)

    def test_discriminated_union(self) -> None:
        adapter = TypeAdapter(HookResult)
        assert isinstance(adapter.validate_python({"kind": "seed", "blob": {"a": 1}}), Seed)
        assert isinstance(adapter.validate_python({"kind": "none"}), NoUpdate)
        patch = adapter.validate_python({"kind": "patch", "values": {"count": 2}})
        assert isinstance(patch, Patch)
        assert patch.values == {"count": 2}
