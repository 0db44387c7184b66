from __future__ import annotations

from datetime import datetime
from typing import Collection, Dict, List, Optional, Sequence

from ..core.constants import SINGLE_WARD_ID_ROLES
from ..core.enums import StaffRole, StaffStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, where_sql
from .model import StaffDraft, StaffPrincipal, StaffRecord
from .repository import StaffRepository

_COLUMNS = """
    id, employee_code, full_name, email, phone_number, username, password_hash,
    role, status, ulb_id, ward_id, eo_id, supervisor_id, contractor_id, last_login_at
"""


def _opt_int(value) -> Optional[int]:
    return int(value) if value is not None else None


def _to_principal(row: dict, ward_ids: Sequence[int]) -> StaffPrincipal:
    return StaffPrincipal(
        id=int(row["id"]),
        employee_code=row["employee_code"],
        full_name=row["full_name"],
        email=row["email"],
        phone_number=row["phone_number"],
        username=row["username"],
        role=StaffRole(row["role"]),
        status=StaffStatus(row["status"]),
        ward_ids=tuple(ward_ids),
        ward_id=_opt_int(row.get("ward_id")),
        ulb_id=_opt_int(row.get("ulb_id")),
        eo_id=_opt_int(row.get("eo_id")),
        supervisor_id=_opt_int(row.get("supervisor_id")),
        contractor_id=_opt_int(row.get("contractor_id")),
        last_login_at=row.get("last_login_at"),
    )


def _load_ward_ids(cur, staff_ids: Sequence[int]) -> Dict[int, List[int]]:
    out: Dict[int, List[int]] = {sid: [] for sid in staff_ids}
    if not staff_ids:
        return out
    clause, params = in_clause("staff_id", staff_ids)
    cur.execute(f"SELECT staff_id, ward_id FROM staff_wards WHERE {clause} ORDER BY ward_id", tuple(params))
    for r in fetchall(cur):
        out[int(r["staff_id"])].append(int(r["ward_id"]))
    return out


def _write_wards(cur, staff_id: int, draft: StaffDraft) -> None:
    """Replace ward assignments and move the clerk back-reference.

    Runs on the caller's cursor so it shares the staff write's transaction.
    """
    cur.execute("DELETE FROM staff_wards WHERE staff_id=%s", (staff_id,))
    if draft.role not in SINGLE_WARD_ID_ROLES:
        for ward_id in draft.ward_ids:
            cur.execute("INSERT INTO staff_wards(staff_id, ward_id) VALUES(%s,%s)", (staff_id, ward_id))

    cur.execute("UPDATE wards SET clerk_id=NULL WHERE clerk_id=%s", (staff_id,))
    if draft.role == StaffRole.CLERK and draft.ward_ids:
        cur.execute("UPDATE wards SET clerk_id=%s WHERE id=%s", (staff_id, draft.ward_ids[0]))


class MySQLStaffRepository(StaffRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_where(self, clause: str, params: tuple) -> Optional[StaffRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM admin_management WHERE {clause} LIMIT 1", params)
            row = fetchone(cur)
            if not row:
                return None
            wards = _load_ward_ids(cur, [int(row["id"])])
            return StaffRecord(
                principal=_to_principal(row, wards[int(row["id"])]),
                password_hash=row["password_hash"],
            )

    def get_by_id(self, staff_id: int) -> Optional[StaffRecord]:
        return self._get_where("id=%s", (staff_id,))

    def find_by_identifier(self, identifier: str) -> Optional[StaffRecord]:
        return self._get_where(
            "employee_code=%s OR email=%s OR phone_number=%s OR username=%s",
            (identifier, identifier, identifier, identifier),
        )

    def find_duplicate_field(
        self,
        *,
        email: Optional[str],
        phone_number: Optional[str],
        username: Optional[str] = None,
        exclude_id: Optional[int] = None,
    ) -> Optional[str]:
        checks = [("email", email), ("phone_number", phone_number), ("username", username)]
        with db_cursor(self._conn_factory) as (_, cur):
            for column, value in checks:
                if not value:
                    continue
                sql = f"SELECT id FROM admin_management WHERE {column}=%s"
                params: list = [value]
                if exclude_id is not None:
                    sql += " AND id<>%s"
                    params.append(exclude_id)
                cur.execute(sql + " LIMIT 1", tuple(params))
                if fetchone(cur):
                    return column
        return None

    def count_by_role(self, role: StaffRole) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS cnt FROM admin_management WHERE role=%s", (role.value,))
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def create(self, *, employee_code: str, username: str, password_hash: str, draft: StaffDraft) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO admin_management(
                    employee_code, full_name, email, phone_number, username, password_hash,
                    role, status, ulb_id, ward_id, eo_id, supervisor_id, contractor_id
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    employee_code,
                    draft.full_name,
                    draft.email,
                    draft.phone_number,
                    username,
                    password_hash,
                    draft.role.value,
                    draft.status.value,
                    draft.ulb_id,
                    draft.ward_id,
                    draft.eo_id,
                    draft.supervisor_id,
                    draft.contractor_id,
                ),
            )
            staff_id = int(cur.lastrowid)
            _write_wards(cur, staff_id, draft)
            return staff_id

    def update(self, staff_id: int, *, draft: StaffDraft) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE admin_management
                SET full_name=%s, email=%s, phone_number=%s, role=%s, status=%s,
                    ulb_id=%s, ward_id=%s, eo_id=%s, supervisor_id=%s, contractor_id=%s
                WHERE id=%s
                """,
                (
                    draft.full_name,
                    draft.email,
                    draft.phone_number,
                    draft.role.value,
                    draft.status.value,
                    draft.ulb_id,
                    draft.ward_id,
                    draft.eo_id,
                    draft.supervisor_id,
                    draft.contractor_id,
                    staff_id,
                ),
            )
            if cur.rowcount == 0:
                cur.execute("SELECT id FROM admin_management WHERE id=%s", (staff_id,))
                if not fetchone(cur):
                    return False
            _write_wards(cur, staff_id, draft)
            return True

    def set_status(self, staff_id: int, *, status: StaffStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE admin_management SET status=%s WHERE id=%s", (status.value, staff_id))
            return cur.rowcount > 0

    def set_password(self, staff_id: int, *, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE admin_management SET password_hash=%s WHERE id=%s", (password_hash, staff_id))
            return cur.rowcount > 0

    def touch_last_login(self, staff_id: int, *, at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE admin_management SET last_login_at=%s WHERE id=%s", (at, staff_id))

    def delete(self, staff_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE wards SET clerk_id=NULL WHERE clerk_id=%s", (staff_id,))
            cur.execute("DELETE FROM staff_wards WHERE staff_id=%s", (staff_id,))
            cur.execute("DELETE FROM admin_management WHERE id=%s", (staff_id,))
            return cur.rowcount > 0

    def list_staff(
        self,
        *,
        role: Optional[StaffRole] = None,
        status: Optional[StaffStatus] = None,
        search: Optional[str] = None,
        ulb_id: Optional[int] = None,
        roles: Optional[Collection[StaffRole]] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[StaffPrincipal]:
        clauses: list[str] = []
        params: list = []
        if role:
            clauses.append("role=%s")
            params.append(role.value)
        if roles is not None:
            clause, values = in_clause("role", sorted(r.value for r in roles))
            clauses.append(clause)
            params.extend(values)
        if status:
            clauses.append("status=%s")
            params.append(status.value)
        if ulb_id is not None:
            clauses.append("ulb_id=%s")
            params.append(ulb_id)
        if search:
            like = f"%{search}%"
            clauses.append("(full_name LIKE %s OR email LIKE %s OR employee_code LIKE %s OR phone_number LIKE %s)")
            params.extend([like, like, like, like])

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM admin_management {where_sql(clauses)} ORDER BY id DESC LIMIT %s OFFSET %s",
                tuple(params + [int(limit), int(offset)]),
            )
            rows = fetchall(cur)
            wards = _load_ward_ids(cur, [int(r["id"]) for r in rows])
            return [_to_principal(r, wards[int(r["id"])]) for r in rows]

    def list_by_ward(self, ward_id: int) -> Sequence[StaffPrincipal]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM admin_management
                WHERE ward_id=%s OR id IN (SELECT staff_id FROM staff_wards WHERE ward_id=%s)
                ORDER BY role, full_name
                """,
                (ward_id, ward_id),
            )
            rows = fetchall(cur)
            wards = _load_ward_ids(cur, [int(r["id"]) for r in rows])
            return [_to_principal(r, wards[int(r["id"])]) for r in rows]

    def list_children(self, staff_id: int) -> Sequence[StaffPrincipal]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM admin_management
                WHERE eo_id=%s OR supervisor_id=%s OR contractor_id=%s
                ORDER BY id
                """,
                (staff_id, staff_id, staff_id),
            )
            rows = fetchall(cur)
            wards = _load_ward_ids(cur, [int(r["id"]) for r in rows])
            return [_to_principal(r, wards[int(r["id"])]) for r in rows]
