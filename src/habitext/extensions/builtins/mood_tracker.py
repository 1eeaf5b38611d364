"""Built-in mood tracker.

Records the mood logged with each completion (``entry.mood``), falling
back to the configured ``default_mood``. The whole namespace is rewritten
on every completion.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from habitext.domain.events import HabitCompleted, HabitCreated
from habitext.domain.habits import CompletionEntry, Habit
from habitext.domain.results import NO_UPDATE, NoUpdate, Patch, Seed
from habitext.extensions.builder import ExtensionBuilder
from habitext.extensions.descriptor import ExtensionDescriptor
from habitext.extensions.hookspecs import hookimpl

NAME = "moodTracker"

DEFAULT_CONFIG: dict[str, Any] = {
    "default_mood": 5,
    "scale_min": 1,
    "scale_max": 10,
    "history_limit": 30,
}


def initial_state() -> dict[str, Any]:
    return {"mood_history": [], "average_mood": None, "total_entries": 0}


def average(moods: Iterable[float]) -> float | None:
    """Mean rounded to one decimal, ``None`` for no moods.

    Examples:
        >>> average([7, 8, 6])
        7.0
        >>> average([]) is None
        True
    """
    values = list(moods)
    if not values:
        return None
    return round(sum(values) / len(values), 1)


def build_mood_tracker(config: Mapping[str, Any] | None = None) -> ExtensionDescriptor:
    settings = {**DEFAULT_CONFIG, **(config or {})}
    builder = ExtensionBuilder(NAME)
    data = builder.data

    def clamp(mood: float) -> float:
        return min(max(mood, settings["scale_min"]), settings["scale_max"])

    def on_created(event: HabitCreated) -> Seed:
        return data.seed(initial_state())

    def on_completed(event: HabitCompleted) -> Patch | NoUpdate:
        if not event.entry.completed:
            return NO_UPDATE
        raw = getattr(event.entry, "mood", None)
        mood = clamp(float(raw if raw is not None else settings["default_mood"]))

        current = data.get(event.habit) or initial_state()
        record = {"date": event.completion_date, "mood": mood}
        history = [*(current.get("mood_history") or []), record]
        history = history[-int(settings["history_limit"]) :]
        return data.replace(
            current,
            mood_history=history,
            average_mood=average(m["mood"] for m in history),
            total_entries=int(current.get("total_entries") or 0) + 1,
            last_entry=record,
        )

    def get_mood_summary(habit: Habit) -> dict[str, Any]:
        state = {**initial_state(), **data.get(habit)}
        recent = [m["mood"] for m in state["mood_history"][-5:]]
        return {
            "average_mood": state["average_mood"],
            "recent_moods": recent,
            "total_entries": state["total_entries"],
        }

    def get_action_buttons(habit: Habit) -> list[dict[str, Any]]:
        return [
            {
                "id": "log_mood",
                "label": "Log mood",
                "scale": [settings["scale_min"], settings["scale_max"]],
            }
        ]

    def get_analytics(habit: Habit, entries: Iterable[CompletionEntry]) -> dict[str, Any]:
        moods = [e.mood for e in entries if getattr(e, "mood", None) is not None]
        return {"average_mood": average(moods), "entries_with_mood": len(moods)}

    return (
        builder.set_metadata(
            version="1.0.0",
            description="Track mood levels when completing habits",
            author="habitext",
        )
        .with_config(settings)
        .on_created(on_created)
        .on_completed(on_completed)
        .add_endpoint("get_mood_summary", get_mood_summary)
        .add_action("get_action_buttons", get_action_buttons)
        .add_action("get_analytics", get_analytics)
        .with_health_check(lambda: {"status": "healthy"})
        .build()
    )


class MoodTrackerPlugin:
    """Contributes the mood tracker extension."""

    @hookimpl
    def habitext_extensions(
        self, config: dict[str, dict[str, Any]]
    ) -> list[ExtensionDescriptor]:
        return [build_mood_tracker(config.get(NAME))]
