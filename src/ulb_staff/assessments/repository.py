from __future__ import annotations

from datetime import datetime
from typing import Any, FrozenSet, Mapping, Optional, Protocol, Sequence

from ..core.enums import AssessmentStatus
from .model import NewAssessment, Shop, ShopTaxAssessment


class ShopRepository(Protocol):
    def get(self, shop_id: int) -> Optional[Shop]:
        raise NotImplementedError


class AssessmentRepository(Protocol):
    def get(self, assessment_id: int) -> Optional[ShopTaxAssessment]:
        raise NotImplementedError

    def find_for_period(self, shop_id: int, assessment_year: int) -> Optional[ShopTaxAssessment]:
        raise NotImplementedError

    def count_numbers(self, prefix: str) -> int:
        """How many assessment numbers start with ``prefix``."""
        raise NotImplementedError

    def create(self, data: NewAssessment, *, assessment_number: str) -> int:
        raise NotImplementedError

    def update_fields(self, assessment_id: int, changes: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def transition(
        self,
        assessment_id: int,
        *,
        from_status: AssessmentStatus,
        to_status: AssessmentStatus,
        approver_id: Optional[int] = None,
        approval_date: Optional[datetime] = None,
        remarks: Optional[str] = None,
    ) -> bool:
        """Move to ``to_status`` only if the row is still in ``from_status``."""
        raise NotImplementedError

    def list_assessments(
        self,
        *,
        ward_ids: Optional[FrozenSet[int]],
        shop_id: Optional[int] = None,
        status: Optional[AssessmentStatus] = None,
        assessment_year: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[ShopTaxAssessment]:
        raise NotImplementedError
