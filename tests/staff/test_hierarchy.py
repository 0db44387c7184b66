from __future__ import annotations

from dataclasses import replace

import pytest

from ulb_staff.core.enums import StaffRole, StaffStatus
from ulb_staff.core.exceptions import (
    DuplicateStaffError,
    InvalidParent,
    InvalidWard,
    ValidationError,
    WardUlbMismatch,
    WorkerNotEligible,
)
from ulb_staff.principals.model import StaffDraft


def _draft(role: StaffRole, **kwargs) -> StaffDraft:
    values = {
        "full_name": "New Person",
        "email": "new@ulb.test",
        "phone_number": "9111111111",
        "role": role,
    }
    values.update(kwargs)
    return StaffDraft(**values)


@pytest.fixture
def validator(world):
    return world.container.hierarchy


def test_shape_is_checked_before_uniqueness(world, validator):
    draft = _draft(StaffRole.CLERK, ward_ids=(7, 12), email=world.clerk.email)

    with pytest.raises(ValidationError) as exc:
        validator.validate_staff(draft)
    assert not isinstance(exc.value, DuplicateStaffError)


@pytest.mark.parametrize(
    "role, kwargs",
    [
        (StaffRole.CLERK, {}),
        (StaffRole.SUPERVISOR, {"ulb_id": 1}),
        (StaffRole.FIELD_WORKER, {"ulb_id": 1}),
        (StaffRole.EO, {"ward_ids": (7,)}),
    ],
)
def test_required_placement_per_role(validator, role, kwargs):
    with pytest.raises(ValidationError):
        validator.validate_staff(_draft(role, **kwargs))


def test_uniqueness_is_checked_before_ward_resolution(world, validator):
    draft = _draft(StaffRole.CLERK, ward_ids=(99,), phone_number=world.officer.phone_number)

    with pytest.raises(DuplicateStaffError) as exc:
        validator.validate_staff(draft)
    assert exc.value.field == "phone_number"


def test_update_does_not_collide_with_itself(world, validator):
    clerk = world.clerk
    draft = _draft(StaffRole.CLERK, ward_ids=(12,), email=clerk.email, phone_number=clerk.phone_number)

    assert validator.validate_staff(draft, staff_id=clerk.id, username=clerk.username) == draft


def test_unknown_ward_is_invalid(validator):
    with pytest.raises(InvalidWard) as exc:
        validator.validate_staff(_draft(StaffRole.INSPECTOR, ward_ids=(7, 99)))
    assert exc.value.ward_id == 99


def test_ward_without_ulb_is_invalid_for_single_ward_roles(validator):
    with pytest.raises(InvalidWard):
        validator.validate_staff(_draft(StaffRole.SUPERVISOR, ward_id=30))


def test_single_ward_roles_take_ulb_from_their_ward(validator):
    out = validator.validate_staff(_draft(StaffRole.SUPERVISOR, ward_id=12))
    assert out.ulb_id == 1


def test_contractor_needs_an_ulb(validator):
    with pytest.raises(ValidationError):
        validator.validate_staff(_draft(StaffRole.CONTRACTOR))


def test_eo_wards_must_sit_in_its_ulb(validator):
    with pytest.raises(WardUlbMismatch) as exc:
        validator.validate_staff(_draft(StaffRole.EO, ulb_id=1, ward_ids=(7, 20)))
    assert exc.value.ward_ids == [20]


def test_explicit_ulb_must_match_ward(validator):
    with pytest.raises(WardUlbMismatch):
        validator.validate_staff(_draft(StaffRole.SUPERVISOR, ward_id=20, ulb_id=1))


def test_desk_roles_may_span_ulbs(validator):
    draft = _draft(StaffRole.INSPECTOR, ward_ids=(7, 20))
    assert validator.validate_staff(draft) == draft


def test_valid_worker_with_full_chain(world, validator):
    draft = _draft(StaffRole.FIELD_WORKER, ward_id=7, eo_id=world.eo.id, supervisor_id=world.supervisor.id)

    out = validator.validate_staff(draft)
    assert out.ulb_id == 1


def test_missing_parent(validator):
    with pytest.raises(InvalidParent) as exc:
        validator.validate_staff(_draft(StaffRole.FIELD_WORKER, ward_id=7, supervisor_id=999))
    assert exc.value.field == "supervisor_id"


def test_eo_link_must_point_at_an_eo(world, validator):
    with pytest.raises(InvalidParent) as exc:
        validator.validate_staff(_draft(StaffRole.FIELD_WORKER, ward_id=7, eo_id=world.supervisor.id))
    assert exc.value.field == "eo_id"


def test_eo_link_must_stay_in_ulb(world, validator):
    with pytest.raises(InvalidParent):
        validator.validate_staff(_draft(StaffRole.FIELD_WORKER, ward_id=7, eo_id=world.eo2.id))


def test_eo_cannot_report_to_an_eo(world, validator):
    with pytest.raises(InvalidParent):
        validator.validate_staff(_draft(StaffRole.EO, ulb_id=1, ward_ids=(7,), eo_id=world.eo.id))


def test_self_link_is_rejected(world, validator):
    supervisor = world.supervisor
    draft = _draft(
        StaffRole.SUPERVISOR,
        ward_id=7,
        email=supervisor.email,
        phone_number=supervisor.phone_number,
        supervisor_id=supervisor.id,
    )

    with pytest.raises(InvalidParent):
        validator.validate_staff(draft, staff_id=supervisor.id, username=supervisor.username)


def test_supervisor_link_must_share_the_ward(world, validator):
    with pytest.raises(InvalidParent):
        validator.validate_staff(_draft(StaffRole.FIELD_WORKER, ward_id=12, supervisor_id=world.supervisor.id))


def test_supervisor_cannot_supervise_a_supervisor(world, validator):
    with pytest.raises(InvalidParent):
        validator.validate_staff(_draft(StaffRole.SUPERVISOR, ward_id=7, supervisor_id=world.supervisor.id))


def test_contractor_link(world, validator, make_staff):
    contractor = world.staff.add(make_staff(18, StaffRole.CONTRACTOR, ward_id=7, ulb_id=1))

    out = validator.validate_staff(_draft(StaffRole.FIELD_WORKER, ward_id=7, contractor_id=contractor.id))
    assert out.contractor_id == contractor.id

    with pytest.raises(InvalidParent):
        validator.validate_staff(_draft(StaffRole.FIELD_WORKER, ward_id=7, contractor_id=world.supervisor.id))


def test_contractor_link_must_stay_in_ulb(world, validator, make_staff):
    contractor = world.staff.add(make_staff(18, StaffRole.CONTRACTOR, ward_id=20, ulb_id=2))

    with pytest.raises(InvalidParent):
        validator.validate_staff(_draft(StaffRole.FIELD_WORKER, ward_id=7, contractor_id=contractor.id))


def test_eligible_worker(world, validator):
    validator.validate_task_assignment(supervisor=world.supervisor, worker=world.worker)
    validator.validate_task_assignment(supervisor=world.supervisor, worker=replace(world.worker, supervisor_id=None))


@pytest.mark.parametrize(
    "changes, reason",
    [
        ({"role": StaffRole.CONTRACTOR}, "not a field worker"),
        ({"status": StaffStatus.INACTIVE}, "worker is not active"),
        ({"ward_id": 12}, "worker is in a different ward"),
        ({"ulb_id": 2}, "worker is in a different ULB"),
        ({"supervisor_id": 999}, "worker reports to another supervisor"),
    ],
)
def test_each_eligibility_condition_alone(world, validator, changes, reason):
    worker = replace(world.worker, **changes)

    with pytest.raises(WorkerNotEligible) as exc:
        validator.validate_task_assignment(supervisor=world.supervisor, worker=worker)
    assert exc.value.reason == reason
    assert exc.value.worker_id == world.worker.id
