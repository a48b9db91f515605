"""
Database module - SQLAlchemy engine, sessions and schema.
"""
from perfectmatch.db.postgres import engine, get_db_session, ping_database
from perfectmatch.db.tables import init_schema

__all__ = [
    "engine",
    "get_db_session",
    "ping_database",
    "init_schema",
]
