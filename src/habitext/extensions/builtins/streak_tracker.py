"""Built-in streak tracker.

Keeps a running streak in the ``streakTracker`` namespace: seeded on
create, advanced on each completion from the last recorded completion
date. Milestone records are appended when the streak reaches one of
:data:`MILESTONES`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

from habitext.domain.events import HabitCompleted, HabitCreated
from habitext.domain.habits import CompletionEntry, Habit
from habitext.domain.results import NO_UPDATE, NoUpdate, Patch, Seed
from habitext.extensions.builder import ExtensionBuilder
from habitext.extensions.descriptor import ExtensionDescriptor
from habitext.extensions.hookspecs import hookimpl

logger = logging.getLogger(__name__)

NAME = "streakTracker"

DEFAULT_CONFIG: dict[str, Any] = {"celebrate_milestones": True}

# (days, title)
MILESTONES: tuple[tuple[int, str], ...] = (
    (3, "Getting Started"),
    (7, "One Week Warrior"),
    (30, "Monthly Master"),
    (100, "Century Champion"),
    (365, "Year-Long Legend"),
)


def initial_state() -> dict[str, Any]:
    return {
        "current_streak": 0,
        "best_streak": 0,
        "total_completions": 0,
        "last_completed": None,
        "milestones": [],
    }


def milestone_for(streak: int) -> dict[str, Any] | None:
    """The milestone reached at exactly *streak* days, if any.

    Examples:
        >>> milestone_for(7)
        {'days': 7, 'title': 'One Week Warrior'}
        >>> milestone_for(8) is None
        True
    """
    for days, title in MILESTONES:
        if days == streak:
            return {"days": days, "title": title}
    return None


def advance(state: Mapping[str, Any], completed_on: str) -> dict[str, Any] | None:
    """Fields that change when a completion lands on *completed_on*.

    Returns ``None`` when the completion does not move the streak: a second
    completion on the same day, or one dated before the last recorded one.
    """
    day = date.fromisoformat(completed_on)
    last_raw = state.get("last_completed")
    current = int(state.get("current_streak") or 0)

    if last_raw:
        gap = (day - date.fromisoformat(last_raw)).days
        if gap <= 0:
            return None
        current = current + 1 if gap == 1 else 1
    else:
        current = 1

    return {
        "current_streak": current,
        "best_streak": max(int(state.get("best_streak") or 0), current),
        "total_completions": int(state.get("total_completions") or 0) + 1,
        "last_completed": day.isoformat(),
    }


def compute_streaks(entries: Iterable[CompletionEntry]) -> dict[str, Any]:
    """Streak statistics recomputed from a full completion history."""
    days = sorted({date.fromisoformat(e.date) for e in entries if e.completed})
    best = run = 0
    previous: date | None = None
    for day in days:
        run = run + 1 if previous is not None and (day - previous).days == 1 else 1
        best = max(best, run)
        previous = day
    return {
        "current_streak": run,
        "best_streak": best,
        "total_completions": len(days),
        "last_completed": previous.isoformat() if previous else None,
    }


def build_streak_tracker(config: Mapping[str, Any] | None = None) -> ExtensionDescriptor:
    settings = {**DEFAULT_CONFIG, **(config or {})}
    builder = ExtensionBuilder(NAME)
    data = builder.data

    def on_created(event: HabitCreated) -> Seed:
        logger.debug("Initializing streak tracking for habit %s", event.habit.id)
        return data.seed(initial_state())

    def on_completed(event: HabitCompleted) -> Patch | NoUpdate:
        if not event.entry.completed:
            return NO_UPDATE
        state = data.get(event.habit) or initial_state()
        changes = advance(state, event.completion_date)
        if changes is None:
            return NO_UPDATE

        milestone = milestone_for(changes["current_streak"])
        if milestone is not None and settings["celebrate_milestones"]:
            logger.info(
                "Habit %s reached streak milestone %s", event.habit.id, milestone["title"]
            )
            milestones = list(state.get("milestones") or [])
            milestones.append({**milestone, "achieved_on": changes["last_completed"]})
            changes["milestones"] = milestones
        return data.patch(changes)

    def get_streak(habit: Habit) -> dict[str, Any]:
        return {**initial_state(), **data.get(habit)}

    def get_analytics(habit: Habit, entries: Iterable[CompletionEntry]) -> dict[str, Any]:
        return compute_streaks(entries)

    return (
        builder.set_metadata(
            version="1.0.0",
            description="Tracks habit completion streaks and milestones",
            author="habitext",
        )
        .with_config(settings)
        .on_created(on_created)
        .on_completed(on_completed)
        .add_endpoint("get_streak", get_streak)
        .add_action("get_analytics", get_analytics)
        .with_health_check(lambda: {"status": "healthy"})
        .build()
    )


class StreakTrackerPlugin:
    """Contributes the streak tracker extension."""

    @hookimpl
    def habitext_extensions(
        self, config: dict[str, dict[str, Any]]
    ) -> list[ExtensionDescriptor]:
        return [build_streak_tracker(config.get(NAME))]
