"""Declarative base for the SQLite store and its connection pragmas."""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase

# WAL lets readers proceed during a write; NORMAL sync is durable under WAL.
SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA busy_timeout=5000",
)


class Base(DeclarativeBase):
    """Declarative base of the ``entity`` table."""


def set_sqlite_pragmas(dbapi_connection: Any, connection_record: Any) -> None:
    """Apply SQLITE_PRAGMAS to a fresh DBAPI connection (they are per-connection)."""
    cursor = dbapi_connection.cursor()
    try:
        for pragma in SQLITE_PRAGMAS:
            cursor.execute(pragma)
    finally:
        cursor.close()


def register_engine_events(engine: Engine) -> None:
    event.listen(engine, "connect", set_sqlite_pragmas)
