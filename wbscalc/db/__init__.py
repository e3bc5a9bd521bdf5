"""Database layer for WBSCalc."""

from wbscalc.db.connection import close_db, enable_sqlite_foreign_keys, get_engine, get_session, init_db
from wbscalc.db.repository import SqlItemStore

__all__ = [
    "SqlItemStore",
    "close_db",
    "enable_sqlite_foreign_keys",
    "get_engine",
    "get_session",
    "init_db",
]
