from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import AssessmentStatus, ShopStatus


@dataclass(frozen=True)
class Shop:
    id: int
    shop_number: str
    shop_name: str
    ward_id: int
    status: ShopStatus = ShopStatus.ACTIVE

    @property
    def is_closed(self) -> bool:
        return self.status == ShopStatus.CLOSED


@dataclass(frozen=True)
class ShopTaxAssessment:
    """Yearly tax assessment of a shop.

    ``ward_id`` is the shop's ward, read through the shop and used for
    scoping; it is not stored on the assessment.
    """

    id: int
    assessment_number: str
    shop_id: int
    assessment_year: int
    financial_year: str
    annual_tax_amount: Decimal
    assessor_id: int
    status: AssessmentStatus = AssessmentStatus.DRAFT
    assessed_value: Optional[Decimal] = None
    rate: Optional[Decimal] = None
    approver_id: Optional[int] = None
    approval_date: Optional[datetime] = None
    remarks: Optional[str] = None
    ward_id: Optional[int] = None
    shop_status: Optional[ShopStatus] = None

    def to_dict(self) -> dict:
        def num(value: Optional[Decimal]):
            return str(value) if value is not None else None

        return {
            "id": self.id,
            "assessment_number": self.assessment_number,
            "shop_id": self.shop_id,
            "ward_id": self.ward_id,
            "assessment_year": self.assessment_year,
            "financial_year": self.financial_year,
            "assessed_value": num(self.assessed_value),
            "rate": num(self.rate),
            "annual_tax_amount": num(self.annual_tax_amount),
            "status": self.status.value,
            "assessor_id": self.assessor_id,
            "approver_id": self.approver_id,
            "approval_date": self.approval_date.isoformat() if self.approval_date else None,
            "remarks": self.remarks,
        }


@dataclass(frozen=True)
class NewAssessment:
    shop_id: int
    assessment_year: int
    financial_year: str
    annual_tax_amount: Decimal
    assessor_id: int
    assessed_value: Optional[Decimal] = None
    rate: Optional[Decimal] = None
    remarks: Optional[str] = None
