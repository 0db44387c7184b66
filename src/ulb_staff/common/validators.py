from __future__ import annotations

from typing import Any, List, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_min_length(value: Optional[str], field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def optional_int(value: Any, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")


def require_int(value: Any, field_name: str) -> int:
    out = optional_int(value, field_name)
    if out is None:
        raise ValidationError(f"{field_name} is required")
    return out


def require_int_list(value: Any, field_name: str) -> List[int]:
    """Ward lists arrive as JSON arrays; anything else is malformed input."""
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{field_name} must be an array")
    out: list[int] = []
    for item in value:
        out.append(require_int(item, field_name))
    # keep order, drop repeats
    return list(dict.fromkeys(out))
