from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Ward:
    """Sub-unit of an ULB. ``clerk_id`` is the ward's designated clerk."""

    id: int
    ward_number: str
    ward_name: str
    ulb_id: Optional[int] = None
    clerk_id: Optional[int] = None
