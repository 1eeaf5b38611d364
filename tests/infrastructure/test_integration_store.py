"""Tests for IntegrationStore and the habits schema."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import inspect, text

from habitext.infrastructure.database.engine import init_database
from habitext.infrastructure.store import HabitNotFoundError, IntegrationStore


def _row(**overrides: Any) -> dict[str, Any]:
    return {"id": "h1", "type": "count", "name": "Push-ups", "user_id": "u1", **overrides}


class TestSchema:
    def test_init_creates_file_and_table(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "habitext.db"
        engine = init_database(db_path)
        try:
            assert db_path.exists()
            assert "habits" in inspect(engine).get_table_names()
        finally:
            engine.dispose()

    def test_wal_mode(self, store: IntegrationStore) -> None:
        with store.engine.connect() as conn:
            mode = conn.execute(text("PRAGMA journal_mode")).scalar()
        assert mode == "wal"


class TestSaveHabit:
    def test_insert_then_read(self, store: IntegrationStore) -> None:
        store.save_habit(_row(is_active=False, target_value=20))
        row = store.get_habit("h1")
        assert row is not None
        assert row["name"] == "Push-ups"
        assert row["is_active"] is False
        assert row["target_value"] == 20
        assert row["integrations"] == {}
        assert row["created"] == row["modified"]

    def test_update_keeps_integrations(self, store: IntegrationStore) -> None:
        store.save_habit(_row(integrations={"counter": {"count": 1}}))
        store.save_habit(_row(name="Pull-ups"))
        row = store.get_habit("h1")
        assert row is not None
        assert row["name"] == "Pull-ups"
        assert row["integrations"] == {"counter": {"count": 1}}

    def test_missing_habit(self, store: IntegrationStore) -> None:
        assert store.get_habit("nope") is None
        assert store.get_integrations("nope") == {}


class TestUpdateIntegrations:
    def test_transform_applied(self, store: IntegrationStore) -> None:
        store.save_habit(_row(integrations={"a": {"v": 1}}))

        updated = store.update_integrations("h1", lambda cur: {**cur, "b": {"v": 2}})

        assert updated == {"a": {"v": 1}, "b": {"v": 2}}
        assert store.get_integrations("h1") == updated

    def test_unknown_habit_raises(self, store: IntegrationStore) -> None:
        with pytest.raises(HabitNotFoundError):
            store.update_integrations("nope", lambda cur: cur)

    def test_failed_transform_leaves_state(self, store: IntegrationStore) -> None:
        store.save_habit(_row(integrations={"a": {"v": 1}}))

        def explode(current: dict[str, Any]) -> dict[str, Any]:
            raise ValueError("nope")

        with pytest.raises(ValueError, match="nope"):
            store.update_integrations("h1", explode)
        assert store.get_integrations("h1") == {"a": {"v": 1}}

    def test_corrupt_json_reads_as_empty(self, store: IntegrationStore) -> None:
        store.save_habit(_row())
        with store.engine.begin() as conn:
            conn.execute(text("UPDATE habits SET integrations = '[1, 2]' WHERE id = 'h1'"))
        assert store.get_integrations("h1") == {}


class TestDelete:
    def test_delete_integrations(self, store: IntegrationStore) -> None:
        store.save_habit(_row(integrations={"a": {"v": 1}}))
        assert store.delete_integrations("h1") is True
        assert store.get_integrations("h1") == {}
        assert store.get_habit("h1") is not None

    def test_delete_habit(self, store: IntegrationStore) -> None:
        store.save_habit(_row())
        assert store.delete_habit("h1") is True
        assert store.get_habit("h1") is None
        assert store.delete_habit("h1") is False
        assert store.delete_integrations("h1") is False
