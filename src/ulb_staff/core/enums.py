from __future__ import annotations

from enum import Enum
from typing import Optional


class StoreKind(str, Enum):
    """Identity store a principal lives in."""

    USER = "user"
    STAFF = "staff"

    @property
    def other(self) -> "StoreKind":
        return StoreKind.STAFF if self is StoreKind.USER else StoreKind.USER


class UserRole(str, Enum):
    """Roles of the generic user store."""

    ADMIN = "admin"
    CITIZEN = "citizen"


class StaffRole(str, Enum):
    """Roles of the staff store."""

    CLERK = "CLERK"
    INSPECTOR = "INSPECTOR"
    OFFICER = "OFFICER"
    COLLECTOR = "COLLECTOR"
    EO = "EO"
    SUPERVISOR = "SUPERVISOR"
    FIELD_WORKER = "FIELD_WORKER"
    CONTRACTOR = "CONTRACTOR"
    ADMIN = "ADMIN"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["StaffRole"]:
        """Accept 'clerk', 'field-worker', 'FIELD_WORKER', ..."""
        if not value:
            return None
        try:
            return cls(str(value).strip().upper().replace("-", "_"))
        except ValueError:
            return None


class StaffStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ScopeKind(str, Enum):
    ALL = "ALL"
    WARDS = "WARDS"
    DENIED = "DENIED"


class TaskStatus(str, Enum):
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class TaskType(str, Enum):
    SWEEPING = "SWEEPING"
    TOILET = "TOILET"
    MRF = "MRF"
    OTHER = "OTHER"


class TaskShift(str, Enum):
    MORNING = "MORNING"
    EVENING = "EVENING"


class ShopStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    CLOSED = "closed"


class AssessmentStatus(str, Enum):
    """Approval workflow states (draft -> pending -> approved/rejected)."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AssessmentType(str, Enum):
    SHOP = "shop"
    WATER = "water"
