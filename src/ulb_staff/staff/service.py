from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping, Optional, Sequence, Tuple

from werkzeug.security import generate_password_hash

from ..auth.enforcer import AccessEnforcer, RequestContext
from ..codes.generator import create_with_code, format_employee_code, generate_password
from ..common.validators import optional_int, require_int_list, require_non_empty
from ..core.constants import DEFAULT_PAGE_LIMIT, DESK_STAFF_ROLES, SINGLE_WARD_ID_ROLES
from ..core.enums import StaffRole, StaffStatus, UserRole
from ..core.exceptions import (
    DuplicateStaffError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from ..database.errors import DuplicateKeyError
from ..principals.model import StaffDraft, StaffPrincipal
from ..principals.repository import StaffRepository
from .hierarchy import HierarchyValidator

logger = logging.getLogger(__name__)

# Staff an EO may create and manage inside its own ULB.
EO_MANAGED_ROLES = frozenset({StaffRole.SUPERVISOR, StaffRole.FIELD_WORKER, StaffRole.CONTRACTOR})

_CODE_KEYS = ("uq_staff_employee_code", "uq_staff_username")
_KEY_FIELDS = {
    "uq_staff_email": "email",
    "uq_staff_phone": "phone_number",
    "uq_staff_username": "username",
    "uq_staff_employee_code": "employee_code",
}

_LINK_FIELDS = ("ward_id", "ulb_id", "eo_id", "supervisor_id", "contractor_id")


def _parse_role(value: Any) -> StaffRole:
    role = StaffRole.parse(value)
    if role is None:
        raise ValidationError(f"Invalid role: {value}")
    return role


def _parse_status(value: Any) -> StaffStatus:
    try:
        return StaffStatus(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid status: {value}")


def _normalize_wards(draft: StaffDraft) -> StaffDraft:
    # Each role uses exactly one of the two ward representations.
    if draft.role in SINGLE_WARD_ID_ROLES:
        return replace(draft, ward_ids=())
    return replace(draft, ward_id=None)


def draft_from_payload(payload: Mapping[str, Any], *, base: Optional[StaffPrincipal] = None) -> StaffDraft:
    """Build a StaffDraft from request JSON, on top of ``base`` for updates."""

    def pick(key: str, current: Any) -> Any:
        return payload[key] if key in payload else current

    full_name = require_non_empty(pick("full_name", base.full_name if base else None), "full_name")
    email = require_non_empty(pick("email", base.email if base else None), "email").lower()
    phone = require_non_empty(pick("phone_number", base.phone_number if base else None), "phone_number")
    role = _parse_role(pick("role", base.role.value if base else None))
    status = _parse_status(pick("status", base.status.value if base else StaffStatus.ACTIVE.value))

    if "ward_ids" in payload:
        ward_ids = tuple(require_int_list(payload["ward_ids"], "ward_ids"))
    else:
        ward_ids = base.ward_ids if base else ()

    links = {}
    for name in _LINK_FIELDS:
        if name in payload:
            links[name] = optional_int(payload[name], name)
        else:
            links[name] = getattr(base, name) if base else None

    return _normalize_wards(
        StaffDraft(
            full_name=full_name,
            email=email,
            phone_number=phone,
            role=role,
            ward_ids=ward_ids,
            status=status,
            **links,
        )
    )


class StaffService:
    """Administration of staff accounts (admins, and EOs for their own ULB)."""

    def __init__(self, staff: StaffRepository, validator: HierarchyValidator):
        self._staff = staff
        self._validator = validator

    @staticmethod
    def _is_admin(ctx: RequestContext) -> bool:
        return ctx.has_role(UserRole.ADMIN, StaffRole.ADMIN)

    def _require_manager(self, ctx: RequestContext) -> None:
        if not (self._is_admin(ctx) or ctx.has_role(StaffRole.EO)):
            raise ForbiddenError("Only administrators and EOs can manage staff")

    def _check_can_manage(self, ctx: RequestContext, target: StaffPrincipal) -> None:
        if self._is_admin(ctx):
            return
        actor = ctx.principal
        if (
            ctx.has_role(StaffRole.EO)
            and target.role in EO_MANAGED_ROLES
            and target.ulb_id is not None
            and target.ulb_id == actor.ulb_id
        ):
            return
        raise ForbiddenError("You cannot manage this staff member")

    def _get_or_404(self, staff_id: int) -> StaffPrincipal:
        record = self._staff.get_by_id(int(staff_id))
        if not record:
            raise NotFoundError(f"Staff {staff_id} not found")
        return record.principal

    def _apply_actor_constraints(self, ctx: RequestContext, draft: StaffDraft) -> StaffDraft:
        if self._is_admin(ctx):
            return draft
        if draft.role not in EO_MANAGED_ROLES:
            raise ForbiddenError(f"An EO cannot manage {draft.role.value} accounts")
        actor = ctx.principal
        return replace(draft, ulb_id=actor.ulb_id, eo_id=actor.id)

    @staticmethod
    def _translate_duplicate(e: DuplicateKeyError) -> DuplicateStaffError:
        return DuplicateStaffError(_KEY_FIELDS.get(e.key, e.key))

    def create_staff(self, ctx: RequestContext, payload: Mapping[str, Any]) -> Tuple[StaffPrincipal, str]:
        """Create an account. The generated password is returned only here."""
        self._require_manager(ctx)
        draft = self._apply_actor_constraints(ctx, draft_from_payload(payload))
        draft = self._validator.validate_staff(draft)

        password = generate_password()
        password_hash = generate_password_hash(password)

        def insert(code: str) -> int:
            return self._staff.create(employee_code=code, username=code, password_hash=password_hash, draft=draft)

        try:
            staff_id = create_with_code(
                count=lambda: self._staff.count_by_role(draft.role),
                make_code=lambda seq: format_employee_code(draft.role, seq),
                insert=insert,
                code_keys=_CODE_KEYS,
            )
        except DuplicateKeyError as e:
            raise self._translate_duplicate(e)

        created = self._get_or_404(staff_id)
        logger.info(
            "Staff %s (%s) created by %s %s",
            created.employee_code,
            created.role.value,
            ctx.principal.store.value,
            ctx.principal.id,
        )
        return created, password

    def update_staff(self, ctx: RequestContext, staff_id: int, payload: Mapping[str, Any]) -> StaffPrincipal:
        self._require_manager(ctx)
        current = self._get_or_404(staff_id)
        self._check_can_manage(ctx, current)

        draft = self._apply_actor_constraints(ctx, draft_from_payload(payload, base=current))
        draft = self._validator.validate_staff(draft, staff_id=current.id, username=current.username)

        try:
            self._staff.update(current.id, draft=draft)
        except DuplicateKeyError as e:
            raise self._translate_duplicate(e)
        logger.info("Staff %s updated by %s %s", current.employee_code, ctx.principal.store.value, ctx.principal.id)
        return self._get_or_404(current.id)

    def set_status(self, ctx: RequestContext, staff_id: int, status: Any) -> StaffPrincipal:
        self._require_manager(ctx)
        target = self._get_or_404(staff_id)
        self._check_can_manage(ctx, target)
        new_status = _parse_status(status)
        self._staff.set_status(target.id, status=new_status)
        logger.info("Staff %s status -> %s", target.employee_code, new_status.value)
        return self._get_or_404(target.id)

    def delete_staff(self, ctx: RequestContext, staff_id: int) -> None:
        if not self._is_admin(ctx):
            raise ForbiddenError("Only administrators can delete staff")
        target = self._get_or_404(staff_id)
        if target.role not in DESK_STAFF_ROLES:
            raise ValidationError(f"{target.role.value} accounts cannot be deleted; deactivate them instead")
        if not self._staff.delete(target.id):
            raise NotFoundError(f"Staff {staff_id} not found")
        logger.info("Staff %s deleted by %s %s", target.employee_code, ctx.principal.store.value, ctx.principal.id)

    def reset_password(self, ctx: RequestContext, staff_id: int) -> Tuple[StaffPrincipal, str]:
        self._require_manager(ctx)
        target = self._get_or_404(staff_id)
        self._check_can_manage(ctx, target)
        password = generate_password()
        self._staff.set_password(target.id, password_hash=generate_password_hash(password))
        logger.info("Password reset for staff %s", target.employee_code)
        return target, password

    def get_staff(self, ctx: RequestContext, staff_id: int) -> StaffPrincipal:
        target = self._get_or_404(staff_id)
        if ctx.is_staff and ctx.principal.id == target.id:
            return target
        self._require_manager(ctx)
        self._check_can_manage(ctx, target)
        return target

    def list_staff(
        self,
        ctx: RequestContext,
        *,
        role: Any = None,
        status: Any = None,
        search: Optional[str] = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> Sequence[StaffPrincipal]:
        self._require_manager(ctx)
        role_filter = _parse_role(role) if role else None
        status_filter = _parse_status(status) if status else None
        admin = self._is_admin(ctx)
        ulb_id = None if admin else ctx.principal.ulb_id
        if not admin and (ulb_id is None or (role_filter is not None and role_filter not in EO_MANAGED_ROLES)):
            return []
        return self._staff.list_staff(
            role=role_filter,
            status=status_filter,
            search=(search or "").strip() or None,
            ulb_id=ulb_id,
            roles=None if admin else EO_MANAGED_ROLES,
            limit=max(1, int(limit)),
            offset=max(0, int(offset)),
        )

    def list_ward_staff(self, ctx: RequestContext, ward_id: Any) -> Sequence[StaffPrincipal]:
        ward = AccessEnforcer.require_specific_ward_access(ctx, ward_id)
        return self._staff.list_by_ward(ward)
