from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import TaskShift, TaskStatus, TaskType


@dataclass(frozen=True)
class WorkerTask:
    """Work assigned by a supervisor to one field worker.

    ``ward_id``/``ulb_id`` are copied from the supervisor at creation and
    never re-derived afterwards.
    """

    id: int
    worker_id: int
    supervisor_id: int
    ward_id: int
    ulb_id: int
    task_type: TaskType
    area_street: str
    shift: TaskShift
    assigned_date: date
    status: TaskStatus = TaskStatus.ASSIGNED
    special_instructions: Optional[str] = None
    completed_at: Optional[datetime] = None
    before_photo: Optional[str] = None
    after_photo: Optional[str] = None
    work_proof_remarks: Optional[str] = None
    escalation_flag: bool = False
    escalation_reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "worker_id": self.worker_id,
            "supervisor_id": self.supervisor_id,
            "ward_id": self.ward_id,
            "ulb_id": self.ulb_id,
            "task_type": self.task_type.value,
            "area_street": self.area_street,
            "shift": self.shift.value,
            "special_instructions": self.special_instructions,
            "status": self.status.value,
            "assigned_date": self.assigned_date.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "before_photo": self.before_photo,
            "after_photo": self.after_photo,
            "work_proof_remarks": self.work_proof_remarks,
            "escalation_flag": self.escalation_flag,
            "escalation_reason": self.escalation_reason,
        }


@dataclass(frozen=True)
class NewTask:
    worker_id: int
    supervisor_id: int
    ward_id: int
    ulb_id: int
    task_type: TaskType
    area_street: str
    shift: TaskShift
    assigned_date: date
    special_instructions: Optional[str] = None
