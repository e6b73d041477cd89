"""Common helpers for storage repositories."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator, Sequence
from typing import Any

from sqlalchemy import Table, event
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import NullPool
from sqlalchemy.sql.dml import Insert
from sqlmodel import create_engine

DEFAULT_BUSY_TIMEOUT_MS = 5000


def build_engine(url: str, *, busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS) -> Engine:
    """Build SQLAlchemy engine; SQLite files get the WAL/busy-timeout policy."""

    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True, pool_recycle=3600)

    engine = create_engine(
        url,
        connect_args={
            "check_same_thread": False,
            "timeout": max(1.0, busy_timeout_ms / 1000.0),
        },
        poolclass=NullPool,
    )
    event.listen(
        engine,
        "connect",
        lambda dbapi_connection, _: _apply_sqlite_pragmas(
            dbapi_connection,
            busy_timeout_ms=busy_timeout_ms,
        ),
    )
    return engine


def insert_ignore(table: Table, dialect_name: str) -> Insert:
    """INSERT that silently drops rows colliding with an existing primary key."""

    if dialect_name == "sqlite":
        return sqlite.insert(table).on_conflict_do_nothing()
    if dialect_name in {"mysql", "mariadb"}:
        return mysql.insert(table).prefix_with("IGNORE")
    if dialect_name == "postgresql":
        return postgresql.insert(table).on_conflict_do_nothing()
    raise ValueError(f"Unsupported database dialect: {dialect_name}")


def upsert(table: Table, dialect_name: str, *, update_columns: Sequence[str]) -> Insert:
    """INSERT that overwrites `update_columns` of a row with the same primary key."""

    key_columns = [column.name for column in table.primary_key.columns]
    if dialect_name == "sqlite":
        statement = sqlite.insert(table)
        return statement.on_conflict_do_update(
            index_elements=key_columns,
            set_={name: statement.excluded[name] for name in update_columns},
        )
    if dialect_name in {"mysql", "mariadb"}:
        statement = mysql.insert(table)
        return statement.on_duplicate_key_update(
            {name: statement.inserted[name] for name in update_columns},
        )
    if dialect_name == "postgresql":
        statement = postgresql.insert(table)
        return statement.on_conflict_do_update(
            index_elements=key_columns,
            set_={name: statement.excluded[name] for name in update_columns},
        )
    raise ValueError(f"Unsupported database dialect: {dialect_name}")


def chunked(rows: Sequence[dict[str, Any]], size: int) -> Iterator[Sequence[dict[str, Any]]]:
    """Split rows into consecutive batches of at most `size`."""

    if size <= 0:
        raise ValueError("size must be > 0")
    for start in range(0, len(rows), size):
        yield rows[start : start + size]


def as_text(value: object) -> str | None:
    """Decode binary columns returned by MediaWiki replicas."""

    if value is None:
        return None
    if isinstance(value, bytes | bytearray):
        return bytes(value).decode("utf-8")
    return str(value)


def as_int(value: object) -> int | None:
    if value is None:
        return None
    if isinstance(value, bytes | bytearray):
        value = bytes(value).decode("ascii")
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _apply_sqlite_pragmas(dbapi_connection: sqlite3.Connection, *, busy_timeout_ms: int) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode = WAL")
    cursor.execute(f"PRAGMA busy_timeout = {max(1, busy_timeout_ms)}")
    cursor.close()
