from __future__ import annotations

from typing import Any, Mapping, Optional

from .model import GeoPoint


def _coord(value: Any, low: float, high: float) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if low <= out <= high else None


def geo_from_payload(payload: Mapping[str, Any]) -> GeoPoint:
    """Optional login location; unusable coordinates are dropped, never rejected."""
    address = payload.get("address")
    return GeoPoint(
        latitude=_coord(payload.get("latitude"), -90.0, 90.0),
        longitude=_coord(payload.get("longitude"), -180.0, 180.0),
        address=str(address)[:255] if address else None,
    )
