from __future__ import annotations

from datetime import datetime
from typing import Collection, Optional, Protocol, Sequence

from ..core.enums import StaffRole, StaffStatus
from .model import StaffDraft, StaffPrincipal, StaffRecord, UserRecord


class UserRepository(Protocol):
    """Generic identity store (``users`` table)."""

    def get_by_id(self, user_id: int) -> Optional[UserRecord]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[UserRecord]:
        raise NotImplementedError

    def set_password(self, user_id: int, *, password_hash: str) -> bool:
        raise NotImplementedError


class StaffRepository(Protocol):
    """Staff identity store (``admin_management`` table).

    Writes that touch a clerk's ward also move the ward's ``clerk_id``
    back-reference inside the same transaction.
    """

    def get_by_id(self, staff_id: int) -> Optional[StaffRecord]:
        raise NotImplementedError

    def find_by_identifier(self, identifier: str) -> Optional[StaffRecord]:
        raise NotImplementedError

    def find_duplicate_field(
        self,
        *,
        email: Optional[str],
        phone_number: Optional[str],
        username: Optional[str] = None,
        exclude_id: Optional[int] = None,
    ) -> Optional[str]:
        """Name of the first field already used by another staff row, if any."""
        raise NotImplementedError

    def count_by_role(self, role: StaffRole) -> int:
        raise NotImplementedError

    def create(self, *, employee_code: str, username: str, password_hash: str, draft: StaffDraft) -> int:
        raise NotImplementedError

    def update(self, staff_id: int, *, draft: StaffDraft) -> bool:
        raise NotImplementedError

    def set_status(self, staff_id: int, *, status: StaffStatus) -> bool:
        raise NotImplementedError

    def set_password(self, staff_id: int, *, password_hash: str) -> bool:
        raise NotImplementedError

    def touch_last_login(self, staff_id: int, *, at: datetime) -> None:
        raise NotImplementedError

    def delete(self, staff_id: int) -> bool:
        raise NotImplementedError

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
        raise NotImplementedError

    def list_by_ward(self, ward_id: int) -> Sequence[StaffPrincipal]:
        raise NotImplementedError

    def list_children(self, staff_id: int) -> Sequence[StaffPrincipal]:
        """Staff whose eo_id, supervisor_id or contractor_id references ``staff_id``."""
        raise NotImplementedError
