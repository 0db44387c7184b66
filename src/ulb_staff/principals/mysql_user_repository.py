from __future__ import annotations

from typing import Optional

from ..core.enums import UserRole
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import GenericPrincipal, UserRecord
from .repository import UserRepository

_COLUMNS = "id, full_name, email, password_hash, role, is_active"


def _role(value: str):
    # Unknown generic roles are kept as plain strings; scope resolution denies them.
    try:
        return UserRole(value)
    except ValueError:
        return value


def _to_record(row: dict) -> UserRecord:
    return UserRecord(
        principal=GenericPrincipal(
            id=int(row["id"]),
            role=_role(row["role"]),
            email=row["email"],
            full_name=row["full_name"],
            is_active=bool(row.get("is_active", True)),
        ),
        password_hash=row["password_hash"],
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[UserRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE id=%s", (user_id,))
            row = fetchone(cur)
            return _to_record(row) if row else None

    def get_by_email(self, email: str) -> Optional[UserRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE email=%s", (email,))
            row = fetchone(cur)
            return _to_record(row) if row else None

    def set_password(self, user_id: int, *, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET password_hash=%s WHERE id=%s", (password_hash, user_id))
            return cur.rowcount > 0
