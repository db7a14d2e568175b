from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from ..core.enums import LockMode
from .connection import DatabaseConnection

# Scans and sweeps read the latest committed rows once their locks are granted.
TRANSACTION_ISOLATION = "READ COMMITTED"


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
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


@contextmanager
def db_transaction(conn_factory: DatabaseConnection, *, isolation_level: str = TRANSACTION_ISOLATION):
    """Explicit transaction: commit on success, rollback on any exception."""
    conn = conn_factory.connect()
    try:
        conn.start_transaction(isolation_level=isolation_level)
        cur = conn.cursor(dictionary=True)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except BaseException:
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


def lock_clause(lock: LockMode) -> str:
    if lock == LockMode.UPDATE:
        return " FOR UPDATE"
    if lock == LockMode.SHARE:
        return " LOCK IN SHARE MODE"
    return ""
