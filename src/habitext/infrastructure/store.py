"""IntegrationStore: habit rows and their integrations JSON column.

The store knows nothing about extensions: it reads and writes plain row
dicts. ``update_integrations`` is the one write path for extension state
and runs read-transform-write inside a single transaction, so a
dispatch's writes land together or not at all.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Connection, Engine

from habitext.infrastructure.database.schema import habits

_HABIT_COLUMNS = (
    "type",
    "name",
    "description",
    "category",
    "target_value",
    "unit",
    "color",
    "is_active",
    "user_id",
)


class HabitNotFoundError(LookupError):
    """No habit row with the requested id."""


class IntegrationStore:
    """Persistence for habit snapshots and per-extension integration state."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    def save_habit(self, row: Mapping[str, Any]) -> None:
        """Insert or update a habit row. ``integrations`` is kept unless given."""
        habit_id = row["id"]
        values = {col: row[col] for col in _HABIT_COLUMNS if col in row}
        if "is_active" in values:
            values["is_active"] = int(bool(values["is_active"]))
        if "integrations" in row:
            values["integrations"] = json.dumps(row["integrations"] or {})
        now = _now_iso()

        with self._engine.begin() as conn:
            exists = conn.execute(select(habits.c.id).where(habits.c.id == habit_id)).first()
            if exists is None:
                conn.execute(
                    insert(habits).values(id=habit_id, created=now, modified=now, **values)
                )
            else:
                conn.execute(
                    update(habits).where(habits.c.id == habit_id).values(modified=now, **values)
                )

    def get_habit(self, habit_id: str) -> dict[str, Any] | None:
        """The habit row with decoded ``integrations``, or ``None``."""
        with self._engine.connect() as conn:
            row = conn.execute(select(habits).where(habits.c.id == habit_id)).first()
        if row is None:
            return None
        data = dict(row._mapping)
        data["is_active"] = bool(data["is_active"])
        data["integrations"] = _decode(data["integrations"])
        return data

    def get_integrations(self, habit_id: str) -> dict[str, Any]:
        """The integrations object for *habit_id* (``{}`` when the habit is absent)."""
        with self._engine.connect() as conn:
            return _read_integrations(conn, habit_id) or {}

    def update_integrations(
        self,
        habit_id: str,
        transform: Callable[[dict[str, Any]], dict[str, Any]],
    ) -> dict[str, Any]:
        """Replace the integrations object with ``transform(current)`` atomically.

        Raises:
            HabitNotFoundError: no row for *habit_id*.
        """
        with self._engine.begin() as conn:
            current = _read_integrations(conn, habit_id)
            if current is None:
                msg = f"Habit not found: {habit_id}"
                raise HabitNotFoundError(msg)
            updated = transform(current)
            conn.execute(
                update(habits)
                .where(habits.c.id == habit_id)
                .values(integrations=json.dumps(updated), modified=_now_iso())
            )
        return updated

    def delete_integrations(self, habit_id: str) -> bool:
        """Drop every extension record for *habit_id*. Returns whether the habit exists."""
        with self._engine.begin() as conn:
            result = conn.execute(
                update(habits)
                .where(habits.c.id == habit_id)
                .values(integrations="{}", modified=_now_iso())
            )
        return result.rowcount > 0

    def delete_habit(self, habit_id: str) -> bool:
        with self._engine.begin() as conn:
            result = conn.execute(delete(habits).where(habits.c.id == habit_id))
        return result.rowcount > 0


def _read_integrations(conn: Connection, habit_id: str) -> dict[str, Any] | None:
    raw = conn.execute(select(habits.c.integrations).where(habits.c.id == habit_id)).scalar()
    if raw is None:
        return None
    return _decode(raw)


def _decode(raw: str | None) -> dict[str, Any]:
    value = json.loads(raw) if raw else {}
    return value if isinstance(value, dict) else {}


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()
