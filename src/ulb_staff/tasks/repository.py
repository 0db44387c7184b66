from __future__ import annotations

from datetime import date
from typing import Any, FrozenSet, Mapping, Optional, Protocol, Sequence

from ..core.enums import TaskStatus
from .model import NewTask, WorkerTask


class TaskRepository(Protocol):
    def create(self, task: NewTask) -> int:
        raise NotImplementedError

    def get(self, task_id: int) -> Optional[WorkerTask]:
        raise NotImplementedError

    def update(self, task_id: int, changes: Mapping[str, Any]) -> bool:
        """Apply column changes (already validated by the service)."""
        raise NotImplementedError

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
        """``ward_ids`` None means unrestricted; it is applied before other filters."""
        raise NotImplementedError
