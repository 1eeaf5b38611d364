"""SQLAlchemy Core table definitions for the habitext database.

Only the columns the extension core reads are modelled. Extension state
lives in ``habits.integrations`` as one JSON object keyed by extension
name, so adding an extension never needs a migration.
"""

from __future__ import annotations

from sqlalchemy import REAL, Column, Index, Integer, MetaData, Table, Text

metadata = MetaData()

habits = Table(
    "habits",
    metadata,
    Column("id", Text, primary_key=True),
    Column("type", Text, nullable=False, default="simple", server_default="simple"),
    Column("name", Text, nullable=False, default="", server_default=""),
    Column("description", Text, nullable=False, default="", server_default=""),
    Column("category", Text, nullable=False, default="Custom", server_default="Custom"),
    Column("target_value", REAL, default=1.0, server_default="1.0"),
    Column("unit", Text, default="times", server_default="times"),
    Column("color", Text),
    Column("is_active", Integer, default=1, server_default="1"),
    Column("user_id", Text),
    Column("integrations", Text, nullable=False, default="{}", server_default="{}"),  # JSON
    Column("created", Text, nullable=False),
    Column("modified", Text, nullable=False),
    Index("ix_habits_user_id", "user_id"),
    Index("ix_habits_type", "type"),
)
