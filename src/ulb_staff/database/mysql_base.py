from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import mysql.connector
from mysql.connector import errorcode

from .connection import DatabaseConnection
from .errors import DuplicateKeyError, duplicate_key_name


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """One connection, one transaction.

    Everything executed inside the block commits together; any exception
    rolls the whole block back. Unique-key violations are re-raised as
    DuplicateKeyError.
    """
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.IntegrityError as e:
        conn.rollback()
        if getattr(e, "errno", None) == errorcode.ER_DUP_ENTRY:
            raise DuplicateKeyError(duplicate_key_name(str(e)) or "unknown", str(e)) from e
        raise
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


def in_clause(column: str, values: Iterable[Any]) -> Tuple[str, List[Any]]:
    """Build ``column IN (%s, ...)``; an empty set matches nothing."""
    vals = list(values)
    if not vals:
        return "1=0", []
    return f"{column} IN ({', '.join(['%s'] * len(vals))})", vals


def where_sql(clauses: Sequence[str]) -> str:
    return ("WHERE " + " AND ".join(clauses)) if clauses else ""
