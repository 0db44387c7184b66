from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import StoreKind


@dataclass(frozen=True)
class DeviceInfo:
    ip_address: str = "unknown"
    device_type: str = "desktop"
    browser: str = "Unknown"
    operating_system: str = "Unknown"
    source: str = "web"


@dataclass(frozen=True)
class GeoPoint:
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None


@dataclass(frozen=True)
class AttendanceSession:
    """One login-to-logout interval. Open while ``logout_at`` is None."""

    id: int
    principal_id: int
    usertype: StoreKind
    login_at: datetime
    logout_at: Optional[datetime] = None
    working_duration_minutes: Optional[int] = None
    geo: GeoPoint = GeoPoint()
    device: DeviceInfo = DeviceInfo()
    is_auto_marked: bool = True

    @property
    def is_open(self) -> bool:
        return self.logout_at is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "principal_id": self.principal_id,
            "usertype": self.usertype.value,
            "login_at": self.login_at.isoformat(),
            "logout_at": self.logout_at.isoformat() if self.logout_at else None,
            "working_duration_minutes": self.working_duration_minutes,
            "login_latitude": self.geo.latitude,
            "login_longitude": self.geo.longitude,
            "login_address": self.geo.address,
            "ip_address": self.device.ip_address,
            "device_type": self.device.device_type,
            "browser": self.device.browser,
            "operating_system": self.device.operating_system,
            "source": self.device.source,
            "is_auto_marked": self.is_auto_marked,
        }
