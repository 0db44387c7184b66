from __future__ import annotations

import logging
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Optional, Sequence

from ..auth.enforcer import AccessEnforcer, RequestContext
from ..codes.generator import create_with_code, format_assessment_number
from ..common.datetime_utils import now_utc
from ..common.validators import optional_int, require_int
from ..core.constants import ASSESSMENT_NUMBER_PREFIXES, DEFAULT_PAGE_LIMIT
from ..core.enums import AssessmentStatus, AssessmentType, StaffRole, UserRole
from ..core.exceptions import (
    DuplicateForPeriod,
    ForbiddenError,
    InvalidTransition,
    NotFoundError,
    SubjectClosed,
    ValidationError,
)
from ..database.errors import DuplicateKeyError
from .model import NewAssessment, ShopTaxAssessment
from .repository import AssessmentRepository, ShopRepository

logger = logging.getLogger(__name__)

AUTHOR_ROLES = (UserRole.ADMIN, StaffRole.ADMIN, StaffRole.CLERK, StaffRole.INSPECTOR)
APPROVER_ROLES = (UserRole.ADMIN, StaffRole.ADMIN, StaffRole.OFFICER)

_NUMBER_KEY = "uq_assessment_number"
_PERIOD_KEY = "uq_assessment_shop_year"
_FINANCIAL_YEAR = re.compile(r"^\d{4}-\d{2}$")


def _decimal(value: Any, field_name: str, *, required: bool = False) -> Optional[Decimal]:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field_name} is required")
        return None
    try:
        out = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{field_name} must be a number")
    if not out.is_finite() or out < 0:
        raise ValidationError(f"{field_name} must be a non-negative number")
    return out


def default_financial_year(assessment_year: int) -> str:
    """2025 -> '2025-26'."""
    return f"{assessment_year}-{str(assessment_year + 1)[-2:]}"


def _financial_year(value: Any, assessment_year: int) -> str:
    if value is None or not str(value).strip():
        return default_financial_year(assessment_year)
    label = str(value).strip()
    if not _FINANCIAL_YEAR.match(label):
        raise ValidationError("financial_year must look like YYYY-YY", details={"financial_year": label})
    return label


class AssessmentService:
    """Approval workflow for shop tax assessments.

    draft -(submit)-> pending -(approve)-> approved
                              -(reject)-> rejected
    Only drafts are editable.
    """

    def __init__(
        self,
        assessments: AssessmentRepository,
        shops: ShopRepository,
        *,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._assessments = assessments
        self._shops = shops
        self._clock = clock

    def _get_in_scope(self, ctx: RequestContext, assessment_id: int) -> ShopTaxAssessment:
        assessment = self._assessments.get(int(assessment_id))
        if assessment is None:
            raise NotFoundError(f"Shop tax assessment {assessment_id} not found")
        if not ctx.scope.allows(assessment.ward_id):
            raise ForbiddenError("Access denied to this ward", details={"ward_id": assessment.ward_id})
        return assessment

    def _reload(self, assessment_id: int) -> ShopTaxAssessment:
        return self._assessments.get(assessment_id)

    def create(self, ctx: RequestContext, payload: Mapping[str, Any]) -> ShopTaxAssessment:
        AccessEnforcer.require_roles(ctx, *AUTHOR_ROLES)
        shop_id = require_int(payload.get("shop_id"), "shop_id")
        year = require_int(payload.get("assessment_year"), "assessment_year")
        if year < 1900 or year > 9999:
            raise ValidationError("assessment_year is out of range")
        annual_tax = _decimal(payload.get("annual_tax_amount"), "annual_tax_amount", required=True)

        shop = self._shops.get(shop_id)
        if shop is None:
            raise NotFoundError(f"Shop {shop_id} not found")
        if shop.is_closed:
            raise SubjectClosed(shop_id)
        AccessEnforcer.require_specific_ward_access(ctx, shop.ward_id)

        if self._assessments.find_for_period(shop_id, year) is not None:
            raise DuplicateForPeriod(shop_id, year)

        data = NewAssessment(
            shop_id=shop_id,
            assessment_year=year,
            financial_year=_financial_year(payload.get("financial_year"), year),
            annual_tax_amount=annual_tax,
            assessor_id=ctx.principal.id,
            assessed_value=_decimal(payload.get("assessed_value"), "assessed_value"),
            rate=_decimal(payload.get("rate"), "rate"),
            remarks=payload.get("remarks") or None,
        )
        prefix = f"{ASSESSMENT_NUMBER_PREFIXES[AssessmentType.SHOP]}-{year}-"
        try:
            assessment_id = create_with_code(
                count=lambda: self._assessments.count_numbers(prefix),
                make_code=lambda seq: format_assessment_number(AssessmentType.SHOP, year, seq),
                insert=lambda number: self._assessments.create(data, assessment_number=number),
                code_keys=(_NUMBER_KEY,),
            )
        except DuplicateKeyError as e:
            if e.key == _PERIOD_KEY:
                # lost a race with a concurrent create for the same period
                raise DuplicateForPeriod(shop_id, year)
            raise

        created = self._reload(assessment_id)
        logger.info("Assessment %s created for shop %s by %s", created.assessment_number, shop_id, ctx.principal.id)
        return created

    def update(self, ctx: RequestContext, assessment_id: int, changes: Mapping[str, Any]) -> ShopTaxAssessment:
        AccessEnforcer.require_roles(ctx, *AUTHOR_ROLES)
        assessment = self._get_in_scope(ctx, assessment_id)
        if assessment.status != AssessmentStatus.DRAFT:
            raise InvalidTransition(assessment.status, "update")

        updates: dict = {}
        if "financial_year" in changes:
            updates["financial_year"] = _financial_year(changes["financial_year"], assessment.assessment_year)
        if "assessed_value" in changes:
            updates["assessed_value"] = _decimal(changes["assessed_value"], "assessed_value")
        if "rate" in changes:
            updates["rate"] = _decimal(changes["rate"], "rate")
        if "annual_tax_amount" in changes:
            updates["annual_tax_amount"] = _decimal(changes["annual_tax_amount"], "annual_tax_amount", required=True)
        if "remarks" in changes:
            updates["remarks"] = changes["remarks"] or None

        if updates and not self._assessments.update_fields(assessment.id, updates):
            raise InvalidTransition(self._reload(assessment.id).status, "update")
        return self._reload(assessment.id)

    def _move(
        self,
        assessment: ShopTaxAssessment,
        *,
        action: str,
        from_status: AssessmentStatus,
        to_status: AssessmentStatus,
        **stamp,
    ) -> ShopTaxAssessment:
        if assessment.status != from_status:
            raise InvalidTransition(assessment.status, action)
        if not self._assessments.transition(assessment.id, from_status=from_status, to_status=to_status, **stamp):
            # status changed underneath us
            raise InvalidTransition(self._reload(assessment.id).status, action)
        logger.info("Assessment %s %s -> %s", assessment.assessment_number, from_status.value, to_status.value)
        return self._reload(assessment.id)

    def submit(self, ctx: RequestContext, assessment_id: int) -> ShopTaxAssessment:
        AccessEnforcer.require_roles(ctx, *AUTHOR_ROLES)
        assessment = self._get_in_scope(ctx, assessment_id)
        if assessment.status != AssessmentStatus.DRAFT:
            raise InvalidTransition(assessment.status, "submit")
        shop = self._shops.get(assessment.shop_id)
        if shop is None or shop.is_closed:
            raise SubjectClosed(assessment.shop_id)
        return self._move(assessment, action="submit", from_status=AssessmentStatus.DRAFT, to_status=AssessmentStatus.PENDING)

    def approve(self, ctx: RequestContext, assessment_id: int) -> ShopTaxAssessment:
        AccessEnforcer.require_roles(ctx, *APPROVER_ROLES)
        assessment = self._get_in_scope(ctx, assessment_id)
        return self._move(
            assessment,
            action="approve",
            from_status=AssessmentStatus.PENDING,
            to_status=AssessmentStatus.APPROVED,
            approver_id=ctx.principal.id,
            approval_date=self._clock(),
        )

    def reject(self, ctx: RequestContext, assessment_id: int, remarks: Optional[str] = None) -> ShopTaxAssessment:
        AccessEnforcer.require_roles(ctx, *APPROVER_ROLES)
        assessment = self._get_in_scope(ctx, assessment_id)
        return self._move(
            assessment,
            action="reject",
            from_status=AssessmentStatus.PENDING,
            to_status=AssessmentStatus.REJECTED,
            remarks=(remarks or "").strip() or None,
        )

    def get(self, ctx: RequestContext, assessment_id: int) -> ShopTaxAssessment:
        return self._get_in_scope(ctx, assessment_id)

    def list(
        self,
        ctx: RequestContext,
        *,
        shop_id: Any = None,
        ward_id: Any = None,
        status: Any = None,
        assessment_year: Any = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> Sequence[ShopTaxAssessment]:
        ward_ids = ctx.scope.ward_filter()
        if ward_id not in (None, ""):
            ward_ids = frozenset({AccessEnforcer.require_specific_ward_access(ctx, ward_id)})

        status_filter = None
        if status:
            try:
                status_filter = AssessmentStatus(str(status).strip().lower())
            except ValueError:
                raise ValidationError(f"Invalid status: {status}")

        return self._assessments.list_assessments(
            ward_ids=ward_ids,
            shop_id=optional_int(shop_id, "shop_id"),
            status=status_filter,
            assessment_year=optional_int(assessment_year, "assessment_year"),
            limit=max(1, int(limit)),
            offset=max(0, int(offset)),
        )
