from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from ..core.constants import ROLE_RANK, SINGLE_WARD_ID_ROLES, ULB_SCOPED_ROLES
from ..core.enums import StaffRole, StaffStatus
from ..core.exceptions import (
    DuplicateStaffError,
    InvalidParent,
    InvalidWard,
    ValidationError,
    WardUlbMismatch,
    WorkerNotEligible,
)
from ..principals.model import StaffDraft, StaffPrincipal
from ..principals.repository import StaffRepository
from ..wards.repository import WardRepository

logger = logging.getLogger(__name__)


class HierarchyValidator:
    """Structural consistency of the staff hierarchy.

    Checks run in a fixed order and the first failure is raised:
    shape, uniqueness, ward resolution, ward/ULB containment, parent links,
    then (on update) the links of existing staff that reference the record.
    Nothing is written here; callers persist the returned draft.
    """

    def __init__(self, staff: StaffRepository, wards: WardRepository):
        self._staff = staff
        self._wards = wards

    def validate_staff(
        self,
        draft: StaffDraft,
        *,
        staff_id: Optional[int] = None,
        username: Optional[str] = None,
    ) -> StaffDraft:
        """Validate a create (``staff_id`` None) or update and return the draft with derived ULB."""
        self._check_shape(draft)
        self._check_unique(draft, staff_id=staff_id, username=username)
        draft = self._resolve_wards(draft)
        self._check_wards_in_ulb(draft)
        self._check_parents(draft, staff_id=staff_id)
        if staff_id is not None:
            self._check_dependents(draft, staff_id=staff_id)
        return draft

    def _check_shape(self, draft: StaffDraft) -> None:
        if draft.role == StaffRole.CLERK and len(draft.ward_ids) != 1:
            raise ValidationError("A clerk must be assigned exactly one ward")
        if draft.role in (StaffRole.SUPERVISOR, StaffRole.FIELD_WORKER) and draft.ward_id is None:
            raise ValidationError(f"ward_id is required for {draft.role.value}")
        if draft.role == StaffRole.EO and draft.ulb_id is None:
            raise ValidationError("ulb_id is required for EO")

    def _check_unique(self, draft: StaffDraft, *, staff_id: Optional[int], username: Optional[str]) -> None:
        field = self._staff.find_duplicate_field(
            email=draft.email,
            phone_number=draft.phone_number,
            username=username,
            exclude_id=staff_id,
        )
        if field:
            raise DuplicateStaffError(field)

    def _resolve_wards(self, draft: StaffDraft) -> StaffDraft:
        referenced = list(draft.ward_ids)
        if draft.ward_id is not None and draft.ward_id not in referenced:
            referenced.append(draft.ward_id)
        if not referenced:
            if draft.role in ULB_SCOPED_ROLES and draft.ulb_id is None:
                raise ValidationError(f"ulb_id is required for {draft.role.value}")
            return draft

        found = self._wards.get_many(referenced)
        for ward_id in referenced:
            if ward_id not in found:
                raise InvalidWard(ward_id)

        if draft.role in SINGLE_WARD_ID_ROLES and draft.ulb_id is None and draft.ward_id is not None:
            ward = found[draft.ward_id]
            if ward.ulb_id is None:
                raise InvalidWard(ward.id)
            draft = replace(draft, ulb_id=ward.ulb_id)

        if draft.role in ULB_SCOPED_ROLES and draft.ulb_id is None:
            raise ValidationError(f"ulb_id is required for {draft.role.value}")
        return draft

    def _check_wards_in_ulb(self, draft: StaffDraft) -> None:
        if draft.role not in ULB_SCOPED_ROLES:
            return
        referenced = set(draft.ward_ids)
        if draft.ward_id is not None:
            referenced.add(draft.ward_id)
        if not referenced:
            return
        wards = self._wards.get_many(referenced)
        offending = [w for w in referenced if wards[w].ulb_id != draft.ulb_id]
        if offending:
            raise WardUlbMismatch(draft.ulb_id, offending)

    def _parent(self, field: str, parent_id: int, *, staff_id: Optional[int]) -> StaffPrincipal:
        if staff_id is not None and parent_id == staff_id:
            raise InvalidParent(field, parent_id, f"{field} cannot reference the record itself")
        record = self._staff.get_by_id(parent_id)
        if record is None:
            raise InvalidParent(field, parent_id, f"{field} {parent_id} does not exist")
        return record.principal

    @staticmethod
    def _check_rank(field: str, parent_id: int, parent_role: StaffRole, child_role: StaffRole) -> None:
        parent_rank = ROLE_RANK.get(parent_role)
        child_rank = ROLE_RANK.get(child_role)
        if parent_rank is None or child_rank is None or parent_rank <= child_rank:
            raise InvalidParent(
                field,
                parent_id,
                f"{parent_role.value} cannot be the {field} of a {child_role.value}",
            )

    def _check_parents(self, draft: StaffDraft, *, staff_id: Optional[int]) -> None:
        if draft.eo_id is not None:
            eo = self._parent("eo_id", draft.eo_id, staff_id=staff_id)
            if eo.role != StaffRole.EO:
                raise InvalidParent("eo_id", eo.id, f"Staff {eo.id} is not an EO")
            if eo.ulb_id != draft.ulb_id:
                raise InvalidParent("eo_id", eo.id, "EO belongs to a different ULB")
            self._check_rank("eo_id", eo.id, eo.role, draft.role)

        if draft.supervisor_id is not None:
            sup = self._parent("supervisor_id", draft.supervisor_id, staff_id=staff_id)
            if sup.role != StaffRole.SUPERVISOR:
                raise InvalidParent("supervisor_id", sup.id, f"Staff {sup.id} is not a supervisor")
            if sup.ulb_id != draft.ulb_id:
                raise InvalidParent("supervisor_id", sup.id, "Supervisor belongs to a different ULB")
            if sup.ward_id != draft.ward_id:
                raise InvalidParent("supervisor_id", sup.id, "Supervisor belongs to a different ward")
            self._check_rank("supervisor_id", sup.id, sup.role, draft.role)

        if draft.contractor_id is not None:
            # employer affiliation, not a rank link
            con = self._parent("contractor_id", draft.contractor_id, staff_id=staff_id)
            if con.role != StaffRole.CONTRACTOR:
                raise InvalidParent("contractor_id", con.id, f"Staff {con.id} is not a contractor")
            if con.ulb_id != draft.ulb_id:
                raise InvalidParent("contractor_id", con.id, "Contractor belongs to a different ULB")

    def _check_dependents(self, draft: StaffDraft, *, staff_id: int) -> None:
        for child in self._staff.list_children(staff_id):
            if child.id == staff_id:
                continue
            if child.eo_id == staff_id:
                if draft.role != StaffRole.EO:
                    raise InvalidParent("eo_id", staff_id, f"Staff {child.id} reports to this record as its EO")
                if draft.ulb_id != child.ulb_id:
                    raise InvalidParent("eo_id", staff_id, f"Staff {child.id} under this EO belongs to ULB {child.ulb_id}")
                self._check_rank("eo_id", staff_id, draft.role, child.role)
            if child.supervisor_id == staff_id:
                if draft.role != StaffRole.SUPERVISOR:
                    raise InvalidParent(
                        "supervisor_id", staff_id, f"Staff {child.id} reports to this record as its supervisor"
                    )
                if draft.ulb_id != child.ulb_id or draft.ward_id != child.ward_id:
                    raise InvalidParent(
                        "supervisor_id", staff_id, f"Staff {child.id} under this supervisor is in ward {child.ward_id}"
                    )
                self._check_rank("supervisor_id", staff_id, draft.role, child.role)
            if child.contractor_id == staff_id:
                if draft.role != StaffRole.CONTRACTOR:
                    raise InvalidParent("contractor_id", staff_id, f"Staff {child.id} is employed by this contractor")
                if draft.ulb_id != child.ulb_id:
                    raise InvalidParent(
                        "contractor_id", staff_id, f"Staff {child.id} employed by this contractor belongs to ULB {child.ulb_id}"
                    )

    def validate_task_assignment(self, *, supervisor: StaffPrincipal, worker: StaffPrincipal) -> None:
        if worker.role != StaffRole.FIELD_WORKER:
            raise WorkerNotEligible(worker.id, "not a field worker")
        if worker.status != StaffStatus.ACTIVE:
            raise WorkerNotEligible(worker.id, "worker is not active")
        if worker.ward_id is None or worker.ward_id != supervisor.ward_id:
            raise WorkerNotEligible(worker.id, "worker is in a different ward")
        if worker.ulb_id is None or worker.ulb_id != supervisor.ulb_id:
            raise WorkerNotEligible(worker.id, "worker is in a different ULB")
        if worker.supervisor_id is not None and worker.supervisor_id != supervisor.id:
            raise WorkerNotEligible(worker.id, "worker reports to another supervisor")
        logger.debug("Worker %s eligible for supervisor %s", worker.id, supervisor.id)
