from __future__ import annotations

import logging
from typing import Optional

from ..core.constants import ATTENDANCE_ROLES
from ..principals.model import Principal, StaffPrincipal
from .model import DeviceInfo, GeoPoint
from .service import AttendanceSessionManager

logger = logging.getLogger("ulb_staff.attendance")


class AttendanceRecorder:
    """Authentication hook that marks attendance for desk staff.

    Runs after the login/logout result is known. Any failure is logged and
    dropped so authentication never fails because of attendance.
    """

    def __init__(self, manager: AttendanceSessionManager):
        self._manager = manager

    @staticmethod
    def tracks(principal: Principal) -> bool:
        return isinstance(principal, StaffPrincipal) and principal.role in ATTENDANCE_ROLES

    def on_login(self, principal: Principal, device: Optional[DeviceInfo] = None, geo: Optional[GeoPoint] = None) -> None:
        if not self.tracks(principal):
            return
        try:
            self._manager.open_session(principal, device, geo)
        except Exception:
            logger.exception("Failed to open attendance session for %s %s", principal.role_name, principal.id)

    def on_logout(self, principal: Principal) -> None:
        if not self.tracks(principal):
            return
        try:
            self._manager.close_session(principal)
        except Exception:
            logger.exception("Failed to close attendance session for %s %s", principal.role_name, principal.id)
