from __future__ import annotations

from datetime import date
from typing import Any, FrozenSet, Mapping, Optional, Sequence

from ..core.enums import TaskShift, TaskStatus, TaskType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, where_sql
from .model import NewTask, WorkerTask
from .repository import TaskRepository

_COLUMNS = """
    id, worker_id, supervisor_id, ward_id, ulb_id, task_type, area_street, shift,
    special_instructions, status, assigned_date, completed_at, before_photo, after_photo,
    work_proof_remarks, escalation_flag, escalation_reason
"""

_UPDATABLE = frozenset(
    {
        "status",
        "completed_at",
        "before_photo",
        "after_photo",
        "work_proof_remarks",
        "escalation_flag",
        "escalation_reason",
        "special_instructions",
    }
)


def _to_task(row: dict) -> WorkerTask:
    return WorkerTask(
        id=int(row["id"]),
        worker_id=int(row["worker_id"]),
        supervisor_id=int(row["supervisor_id"]),
        ward_id=int(row["ward_id"]),
        ulb_id=int(row["ulb_id"]),
        task_type=TaskType(row["task_type"]),
        area_street=row["area_street"],
        shift=TaskShift(row["shift"]),
        special_instructions=row.get("special_instructions"),
        status=TaskStatus(row["status"]),
        assigned_date=row["assigned_date"],
        completed_at=row.get("completed_at"),
        before_photo=row.get("before_photo"),
        after_photo=row.get("after_photo"),
        work_proof_remarks=row.get("work_proof_remarks"),
        escalation_flag=bool(row.get("escalation_flag")),
        escalation_reason=row.get("escalation_reason"),
    )


class MySQLTaskRepository(TaskRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, task: NewTask) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO worker_tasks(
                    worker_id, supervisor_id, ward_id, ulb_id, task_type, area_street, shift,
                    special_instructions, status, assigned_date
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    task.worker_id,
                    task.supervisor_id,
                    task.ward_id,
                    task.ulb_id,
                    task.task_type.value,
                    task.area_street,
                    task.shift.value,
                    task.special_instructions,
                    TaskStatus.ASSIGNED.value,
                    task.assigned_date,
                ),
            )
            return int(cur.lastrowid)

    def get(self, task_id: int) -> Optional[WorkerTask]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM worker_tasks WHERE id=%s", (task_id,))
            row = fetchone(cur)
            return _to_task(row) if row else None

    def update(self, task_id: int, changes: Mapping[str, Any]) -> bool:
        unknown = set(changes) - _UPDATABLE
        if unknown:
            raise ValueError(f"Unsupported task columns: {sorted(unknown)}")
        if not changes:
            return True
        assignments = []
        params: list = []
        for column, value in changes.items():
            assignments.append(f"{column}=%s")
            params.append(getattr(value, "value", value))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE worker_tasks SET {', '.join(assignments)} WHERE id=%s",
                tuple(params + [task_id]),
            )
            return cur.rowcount > 0

    def list_tasks(
        self,
        *,
        ward_ids: Optional[FrozenSet[int]],
        supervisor_id: Optional[int] = None,
        worker_id: Optional[int] = None,
        status: Optional[TaskStatus] = None,
        assigned_date: Optional[date] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[WorkerTask]:
        clauses: list[str] = []
        params: list = []
        if ward_ids is not None:
            clause, values = in_clause("ward_id", sorted(ward_ids))
            clauses.append(clause)
            params.extend(values)
        if supervisor_id is not None:
            clauses.append("supervisor_id=%s")
            params.append(supervisor_id)
        if worker_id is not None:
            clauses.append("worker_id=%s")
            params.append(worker_id)
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        if assigned_date is not None:
            clauses.append("assigned_date=%s")
            params.append(assigned_date)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM worker_tasks {where_sql(clauses)} "
                "ORDER BY assigned_date DESC, id DESC LIMIT %s OFFSET %s",
                tuple(params + [int(limit), int(offset)]),
            )
            return [_to_task(r) for r in fetchall(cur)]
