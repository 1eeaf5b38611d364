"""SQLite database engine and schema via SQLAlchemy Core."""

from habitext.infrastructure.database.engine import create_db_engine, init_database
from habitext.infrastructure.database.schema import habits, metadata

__all__ = ["create_db_engine", "habits", "init_database", "metadata"]
