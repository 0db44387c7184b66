from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import StoreKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceSession, DeviceInfo, GeoPoint
from .repository import AttendanceRepository

_COLUMNS = """
    id, principal_id, usertype, login_at, logout_at, working_duration_minutes,
    login_latitude, login_longitude, login_address,
    ip_address, device_type, browser, operating_system, source, is_auto_marked
"""


def _opt_float(value) -> Optional[float]:
    return float(value) if value is not None else None


def _to_session(row: dict) -> AttendanceSession:
    return AttendanceSession(
        id=int(row["id"]),
        principal_id=int(row["principal_id"]),
        usertype=StoreKind(row["usertype"]),
        login_at=row["login_at"],
        logout_at=row.get("logout_at"),
        working_duration_minutes=row.get("working_duration_minutes"),
        geo=GeoPoint(
            latitude=_opt_float(row.get("login_latitude")),
            longitude=_opt_float(row.get("login_longitude")),
            address=row.get("login_address"),
        ),
        device=DeviceInfo(
            ip_address=row.get("ip_address") or "unknown",
            device_type=row.get("device_type") or "desktop",
            browser=row.get("browser") or "Unknown",
            operating_system=row.get("operating_system") or "Unknown",
            source=row.get("source") or "web",
        ),
        is_auto_marked=bool(row.get("is_auto_marked", True)),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def latest_open(self, principal_id: int, usertype: StoreKind) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_sessions
                WHERE principal_id=%s AND usertype=%s AND logout_at IS NULL
                ORDER BY login_at DESC, id DESC
                LIMIT 1
                """,
                (principal_id, usertype.value),
            )
            row = fetchone(cur)
            return _to_session(row) if row else None

    def create_open(
        self,
        *,
        principal_id: int,
        usertype: StoreKind,
        login_at: datetime,
        device: DeviceInfo,
        geo: GeoPoint,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_sessions(
                    principal_id, usertype, login_at, login_latitude, login_longitude, login_address,
                    ip_address, device_type, browser, operating_system, source, is_auto_marked
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (
                    principal_id,
                    usertype.value,
                    login_at,
                    geo.latitude,
                    geo.longitude,
                    geo.address,
                    device.ip_address,
                    device.device_type,
                    device.browser,
                    device.operating_system,
                    device.source,
                ),
            )
            return int(cur.lastrowid)

    def close(self, session_id: int, *, logout_at: datetime, working_duration_minutes: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_sessions
                SET logout_at=%s, working_duration_minutes=%s
                WHERE id=%s AND logout_at IS NULL
                """,
                (logout_at, working_duration_minutes, session_id),
            )
            return cur.rowcount > 0

    def get(self, session_id: int) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_sessions WHERE id=%s", (session_id,))
            row = fetchone(cur)
            return _to_session(row) if row else None

    def list_for_principal(self, principal_id: int, usertype: StoreKind, *, limit: int) -> Sequence[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_sessions
                WHERE principal_id=%s AND usertype=%s
                ORDER BY login_at DESC, id DESC
                LIMIT %s
                """,
                (principal_id, usertype.value, int(limit)),
            )
            return [_to_session(r) for r in fetchall(cur)]
