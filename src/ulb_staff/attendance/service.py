from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_utc, whole_minutes_between
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..principals.model import Principal
from .model import AttendanceSession, DeviceInfo, GeoPoint
from .repository import AttendanceRepository

logger = logging.getLogger("ulb_staff.attendance")


class AttendanceSessionManager:
    """Closed -(login)-> Open -(logout)-> Closed, per principal.

    A second login while a session is open is logged and still opens a new
    session. Logout without an open session does nothing.
    """

    def __init__(self, sessions: AttendanceRepository, *, clock: Callable[[], datetime] = now_utc):
        self._sessions = sessions
        self._clock = clock

    def open_session(
        self,
        principal: Principal,
        device: Optional[DeviceInfo] = None,
        geo: Optional[GeoPoint] = None,
    ) -> AttendanceSession:
        existing = self._sessions.latest_open(principal.id, principal.store)
        if existing is not None:
            logger.warning(
                "%s %s logged in with an open attendance session (previous session %s)",
                principal.role_name,
                principal.id,
                existing.id,
            )

        login_at = self._clock()
        session_id = self._sessions.create_open(
            principal_id=principal.id,
            usertype=principal.store,
            login_at=login_at,
            device=device or DeviceInfo(),
            geo=geo or GeoPoint(),
        )
        return self._sessions.get(session_id)

    def close_session(self, principal: Principal) -> Optional[AttendanceSession]:
        current = self._sessions.latest_open(principal.id, principal.store)
        if current is None:
            logger.info("%s %s logged out without an open attendance session", principal.role_name, principal.id)
            return None

        logout_at = self._clock()
        minutes = whole_minutes_between(current.login_at, logout_at)
        self._sessions.close(current.id, logout_at=logout_at, working_duration_minutes=minutes)
        return self._sessions.get(current.id)

    def list_sessions(self, principal: Principal, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceSession]:
        return self._sessions.list_for_principal(principal.id, principal.store, limit=max(1, int(limit)))
