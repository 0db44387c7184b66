from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple, Union

from ..core.enums import StoreKind, StaffRole, StaffStatus, UserRole


@dataclass(frozen=True)
class GenericPrincipal:
    """Account of the generic ``users`` store (administrators, citizens)."""

    id: int
    role: Union[UserRole, str]
    email: str
    full_name: str
    is_active: bool = True

    store = StoreKind.USER

    @property
    def role_name(self) -> str:
        return getattr(self.role, "value", str(self.role))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store": self.store.value,
            "role": self.role_name,
            "email": self.email,
            "full_name": self.full_name,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class StaffPrincipal:
    """Staff member as seen by the access layer.

    Carries the hierarchy links the scope is derived from, never the
    password hash.
    """

    id: int
    employee_code: str
    full_name: str
    email: str
    phone_number: str
    username: str
    role: StaffRole
    status: StaffStatus = StaffStatus.ACTIVE
    ward_ids: Tuple[int, ...] = field(default_factory=tuple)
    ward_id: Optional[int] = None
    ulb_id: Optional[int] = None
    eo_id: Optional[int] = None
    supervisor_id: Optional[int] = None
    contractor_id: Optional[int] = None
    last_login_at: Optional[datetime] = None

    store = StoreKind.STAFF

    @property
    def role_name(self) -> str:
        return self.role.value

    @property
    def is_active(self) -> bool:
        return self.status == StaffStatus.ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store": self.store.value,
            "employee_code": self.employee_code,
            "full_name": self.full_name,
            "email": self.email,
            "phone_number": self.phone_number,
            "username": self.username,
            "role": self.role.value,
            "status": self.status.value,
            "ward_ids": list(self.ward_ids),
            "ward_id": self.ward_id,
            "ulb_id": self.ulb_id,
            "eo_id": self.eo_id,
            "supervisor_id": self.supervisor_id,
            "contractor_id": self.contractor_id,
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
        }


Principal = Union[GenericPrincipal, StaffPrincipal]


@dataclass(frozen=True)
class UserRecord:
    principal: GenericPrincipal
    password_hash: str


@dataclass(frozen=True)
class StaffRecord:
    """Repository-level row: the descriptor plus its credential."""

    principal: StaffPrincipal
    password_hash: str


@dataclass(frozen=True)
class StaffDraft:
    """Validated attributes of a staff row about to be written."""

    full_name: str
    email: str
    phone_number: str
    role: StaffRole
    ward_ids: Tuple[int, ...] = ()
    ward_id: Optional[int] = None
    ulb_id: Optional[int] = None
    eo_id: Optional[int] = None
    supervisor_id: Optional[int] = None
    contractor_id: Optional[int] = None
    status: StaffStatus = StaffStatus.ACTIVE
