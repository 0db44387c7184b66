from __future__ import annotations

import logging
from typing import Optional, Union

from ..core.enums import StoreKind
from .model import Principal, StaffRecord, UserRecord
from .repository import StaffRepository, UserRepository

logger = logging.getLogger(__name__)


class PrincipalStore:
    """Read-only view over both identity stores.

    ``lookup`` tries the hinted store first and falls back to the other
    one, so tokens issued before a principal moved stores keep resolving.
    Returned principals never carry a password hash.
    """

    def __init__(self, users: UserRepository, staff: StaffRepository):
        self._users = users
        self._staff = staff

    def _get(self, store: StoreKind, principal_id: int) -> Optional[Principal]:
        if store == StoreKind.STAFF:
            record = self._staff.get_by_id(principal_id)
        else:
            record = self._users.get_by_id(principal_id)
        return record.principal if record else None

    def lookup(self, principal_id: int, store_hint: Union[StoreKind, str, None] = None) -> Optional[Principal]:
        try:
            first = StoreKind(store_hint) if store_hint else StoreKind.STAFF
        except ValueError:
            first = StoreKind.STAFF

        found = self._get(first, principal_id)
        if found is not None:
            return found

        found = self._get(first.other, principal_id)
        if found is not None:
            logger.info("Principal %s resolved from %s store (hint was %s)", principal_id, first.other.value, first.value)
        return found

    def find_staff_by_identifier(self, identifier: str) -> Optional[StaffRecord]:
        identifier = (identifier or "").strip()
        if not identifier:
            return None
        return self._staff.find_by_identifier(identifier)

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        email = (email or "").strip().lower()
        if not email:
            return None
        return self._users.get_by_email(email)

    def get_staff_record(self, staff_id: int) -> Optional[StaffRecord]:
        return self._staff.get_by_id(staff_id)

    def get_user_record(self, user_id: int) -> Optional[UserRecord]:
        return self._users.get_by_id(user_id)
