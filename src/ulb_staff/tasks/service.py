from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, Sequence

from ..auth.enforcer import AccessEnforcer, RequestContext
from ..common.datetime_utils import now_utc, parse_iso_date
from ..common.validators import optional_int, require_int, require_non_empty
from ..core.constants import DEFAULT_PAGE_LIMIT
from ..core.enums import StaffRole, TaskShift, TaskStatus, TaskType, UserRole
from ..core.exceptions import (
    ForbiddenError,
    InvalidTransition,
    NotFoundError,
    ValidationError,
    WardUlbMismatch,
)
from ..principals.model import StaffPrincipal
from ..principals.repository import StaffRepository
from ..staff.hierarchy import HierarchyValidator
from ..wards.repository import WardRepository
from .model import NewTask, WorkerTask
from .repository import TaskRepository

logger = logging.getLogger(__name__)

_STATUS_ORDER = [TaskStatus.ASSIGNED, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED]
_PROOF_FIELDS = ("before_photo", "after_photo", "work_proof_remarks", "escalation_reason", "special_instructions")


def _parse_enum(enum_cls, value: Any, field_name: str):
    if value is None or value == "":
        raise ValidationError(f"{field_name} is required")
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Invalid {field_name}: {value}")


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _parse_date(value: Any, field_name: str) -> Optional[date]:
    if value is None or value == "":
        return None
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"{field_name} must be YYYY-MM-DD")


class TaskService:
    """Supervisor-to-worker task assignment on top of the staff hierarchy."""

    def __init__(
        self,
        tasks: TaskRepository,
        staff: StaffRepository,
        wards: WardRepository,
        validator: HierarchyValidator,
        *,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._tasks = tasks
        self._staff = staff
        self._wards = wards
        self._validator = validator
        self._clock = clock

    def _staff_or_404(self, staff_id: int, label: str) -> StaffPrincipal:
        record = self._staff.get_by_id(staff_id)
        if record is None:
            raise NotFoundError(f"{label} {staff_id} not found")
        return record.principal

    def _resolve_supervisor(self, ctx: RequestContext, payload: Mapping[str, Any]) -> StaffPrincipal:
        if ctx.has_role(StaffRole.SUPERVISOR):
            return ctx.principal
        if not ctx.has_role(StaffRole.EO, StaffRole.ADMIN, UserRole.ADMIN):
            raise ForbiddenError("Only supervisors, EOs and administrators can assign tasks")
        supervisor = self._staff_or_404(require_int(payload.get("supervisor_id"), "supervisor_id"), "Supervisor")
        if supervisor.role != StaffRole.SUPERVISOR:
            raise ValidationError(f"Staff {supervisor.id} is not a supervisor")
        return supervisor

    def _check_eo_ulb(self, ctx: RequestContext, ward_id: int) -> None:
        if not ctx.has_role(StaffRole.EO):
            return
        eo_ulb = ctx.principal.ulb_id
        ward = self._wards.get(ward_id)
        if ward is None or ward.ulb_id != eo_ulb:
            raise WardUlbMismatch(eo_ulb, [ward_id])

    def create_task(self, ctx: RequestContext, payload: Mapping[str, Any]) -> WorkerTask:
        worker_id = require_int(payload.get("worker_id"), "worker_id")
        task_type = _parse_enum(TaskType, payload.get("task_type"), "task_type")
        shift = _parse_enum(TaskShift, payload.get("shift"), "shift")
        area_street = require_non_empty(payload.get("area_street"), "area_street")
        assigned_date = _parse_date(payload.get("assigned_date"), "assigned_date") or self._clock().date()
        requested_ward = optional_int(payload.get("ward_id"), "ward_id")

        supervisor = self._resolve_supervisor(ctx, payload)
        if supervisor.ward_id is None or supervisor.ulb_id is None:
            raise ValidationError("Supervisor must be assigned to a ward and an ULB")

        self._check_eo_ulb(ctx, requested_ward if requested_ward is not None else supervisor.ward_id)
        if requested_ward is not None and requested_ward != supervisor.ward_id:
            raise ValidationError(f"Supervisor {supervisor.id} is not assigned to ward {requested_ward}")

        worker = self._staff_or_404(worker_id, "Worker")
        self._validator.validate_task_assignment(supervisor=supervisor, worker=worker)
        AccessEnforcer.require_specific_ward_access(ctx, supervisor.ward_id)

        task_id = self._tasks.create(
            NewTask(
                worker_id=worker.id,
                supervisor_id=supervisor.id,
                ward_id=supervisor.ward_id,
                ulb_id=supervisor.ulb_id,
                task_type=task_type,
                area_street=area_street,
                shift=shift,
                assigned_date=assigned_date,
                special_instructions=(payload.get("special_instructions") or None),
            )
        )
        logger.info("Task %s assigned to worker %s by supervisor %s", task_id, worker.id, supervisor.id)
        return self._tasks.get(task_id)

    def update_task(self, ctx: RequestContext, task_id: int, payload: Mapping[str, Any]) -> WorkerTask:
        task = self._tasks.get(int(task_id))
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")

        actor = ctx.principal
        if not (
            ctx.has_role(StaffRole.SUPERVISOR)
            and task.supervisor_id == actor.id
            and task.ulb_id == actor.ulb_id
        ):
            raise ForbiddenError("Task does not belong to you")

        changes: dict = {}
        if payload.get("status"):
            new_status = _parse_enum(TaskStatus, payload["status"], "status")
            if _STATUS_ORDER.index(new_status) < _STATUS_ORDER.index(task.status):
                raise InvalidTransition(task.status, f"move to {new_status.value}")
            if new_status != task.status:
                changes["status"] = new_status
                if new_status == TaskStatus.COMPLETED:
                    changes["completed_at"] = self._clock()

        for name in _PROOF_FIELDS:
            if name in payload:
                changes[name] = payload[name] or None
        if "escalation_flag" in payload:
            changes["escalation_flag"] = _parse_bool(payload["escalation_flag"])

        if changes:
            self._tasks.update(task.id, changes)
        return self._tasks.get(task.id)

    def list_tasks(
        self,
        ctx: RequestContext,
        *,
        status: Any = None,
        worker_id: Any = None,
        ward_id: Any = None,
        assigned_date: Any = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> Sequence[WorkerTask]:
        ward_ids = ctx.scope.ward_filter()
        if ward_id not in (None, ""):
            ward_ids = frozenset({AccessEnforcer.require_specific_ward_access(ctx, ward_id)})

        supervisor_filter = None
        worker_filter = optional_int(worker_id, "worker_id")
        if ctx.has_role(StaffRole.SUPERVISOR):
            supervisor_filter = ctx.principal.id
        elif ctx.has_role(StaffRole.FIELD_WORKER):
            worker_filter = ctx.principal.id

        return self._tasks.list_tasks(
            ward_ids=ward_ids,
            supervisor_id=supervisor_filter,
            worker_id=worker_filter,
            status=_parse_enum(TaskStatus, status, "status") if status else None,
            assigned_date=_parse_date(assigned_date, "assigned_date"),
            limit=max(1, int(limit)),
            offset=max(0, int(offset)),
        )
