from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import ConstraintViolation, StoreFailure


@contextmanager
def db_cursor(conn_factory, *, dictionary: bool = True):
    """Connection + cursor for one unit of work.

    Commits on success, rolls back on any error. Driver errors are translated:
    duplicate keys become ConstraintViolation, everything else StoreFailure.
    """
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        raise StoreFailure(f"Database unavailable: {exc}") from exc

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.IntegrityError as exc:
        _safe_rollback(conn)
        if exc.errno == errorcode.ER_DUP_ENTRY:
            raise ConstraintViolation(str(exc)) from exc
        raise StoreFailure(str(exc)) from exc
    except mysql.connector.Error as exc:
        _safe_rollback(conn)
        raise StoreFailure(str(exc)) from exc
    except Exception:
        _safe_rollback(conn)
        raise
    finally:
        conn.close()


def _safe_rollback(conn) -> None:
    # the connection may already be gone; the error being raised is what matters
    try:
        conn.rollback()
    except mysql.connector.Error:
        pass


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def as_bool(value: Any) -> Optional[bool]:
    """TINYINT(1) columns come back as ints; NULL stays None."""
    if value is None:
        return None
    return bool(value)
