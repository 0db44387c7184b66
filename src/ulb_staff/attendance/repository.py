from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import StoreKind
from .model import AttendanceSession, DeviceInfo, GeoPoint


class AttendanceRepository(Protocol):
    def latest_open(self, principal_id: int, usertype: StoreKind) -> Optional[AttendanceSession]:
        """Most recent session without logout, ordered by login time."""
        raise NotImplementedError

    def create_open(
        self,
        *,
        principal_id: int,
        usertype: StoreKind,
        login_at: datetime,
        device: DeviceInfo,
        geo: GeoPoint,
    ) -> int:
        raise NotImplementedError

    def close(self, session_id: int, *, logout_at: datetime, working_duration_minutes: int) -> bool:
        """Close an open session; closed sessions are never rewritten."""
        raise NotImplementedError

    def get(self, session_id: int) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def list_for_principal(self, principal_id: int, usertype: StoreKind, *, limit: int) -> Sequence[AttendanceSession]:
        raise NotImplementedError
