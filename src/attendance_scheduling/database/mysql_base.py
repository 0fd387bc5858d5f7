from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import ConflictError
from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    active = conn_factory.current()
    if active is not None:
        # Inside atomic(): the transaction owner commits or rolls back.
        cur = active.cursor(dictionary=dictionary)
        try:
            yield active, cur
        finally:
            cur.close()
        return

    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


@contextmanager
def unique_violation_as_conflict(message: str):
    """Translate MySQL duplicate-key errors into ConflictError."""
    try:
        yield
    except mysql.connector.IntegrityError as exc:
        if getattr(exc, "errno", None) == errorcode.ER_DUP_ENTRY:
            raise ConflictError(message) from exc
        raise


def to_json(value: Any) -> Optional[str]:
    """Encode an opaque JSON value for a JSON column (None stays SQL NULL)."""
    if value is None:
        return None
    return json.dumps(value, default=str)


def from_json(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value)
    return value


def as_bool(value: Any) -> bool:
    return bool(int(value)) if value is not None else False


def optional_int(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


def in_clause(values: Sequence[Any]) -> str:
    """Placeholder list for ``IN (...)``; callers guarantee ``values`` is non-empty."""
    return ", ".join(["%s"] * len(values))


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
