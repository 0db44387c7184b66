from __future__ import annotations

from dataclasses import replace
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from ulb_staff.assessments.model import NewAssessment, Shop, ShopTaxAssessment
from ulb_staff.attendance.model import AttendanceSession
from ulb_staff.auth.enforcer import RequestContext
from ulb_staff.auth.scope import resolve_scope
from ulb_staff.container import assemble
from ulb_staff.core.enums import (
    AssessmentStatus,
    ShopStatus,
    StaffRole,
    StaffStatus,
    UserRole,
)
from ulb_staff.database.errors import DuplicateKeyError
from ulb_staff.principals.model import (
    GenericPrincipal,
    StaffDraft,
    StaffPrincipal,
    StaffRecord,
    UserRecord,
)
from ulb_staff.tasks.model import NewTask, WorkerTask
from ulb_staff.wards.model import Ward

# Cheap hash so fixtures stay fast.
PASSWORD = "secret123"
PASSWORD_HASH = generate_password_hash(PASSWORD, method="pbkdf2:sha256:1000")


class InMemoryWards:
    def __init__(self):
        self.wards: dict[int, Ward] = {}

    def add(self, ward_id: int, ulb_id: Optional[int]) -> Ward:
        ward = Ward(id=ward_id, ward_number=str(ward_id), ward_name=f"Ward {ward_id}", ulb_id=ulb_id)
        self.wards[ward_id] = ward
        return ward

    def set_clerk(self, ward_id: int, clerk_id: Optional[int]) -> None:
        self.wards[ward_id] = replace(self.wards[ward_id], clerk_id=clerk_id)

    def get(self, ward_id):
        return self.wards.get(ward_id)

    def get_many(self, ward_ids):
        return {w: self.wards[w] for w in ward_ids if w in self.wards}


class InMemoryStaff:
    """Staff store with the same unique keys and clerk back-reference as MySQL."""

    _UNIQUE = (
        ("employee_code", "uq_staff_employee_code"),
        ("email", "uq_staff_email"),
        ("phone_number", "uq_staff_phone"),
        ("username", "uq_staff_username"),
    )

    def __init__(self, wards: InMemoryWards):
        self._wards = wards
        self.rows: dict[int, StaffRecord] = {}
        self._next_id = 1
        self.taken_codes: set[str] = set()
        self.create_calls: list[str] = []

    def _check_unique(self, principal: StaffPrincipal, *, exclude_id=None) -> None:
        if principal.employee_code in self.taken_codes:
            raise DuplicateKeyError("uq_staff_employee_code")
        for field, key in self._UNIQUE:
            for other in self.rows.values():
                if other.principal.id != exclude_id and getattr(other.principal, field) == getattr(principal, field):
                    raise DuplicateKeyError(key)

    def _write_wards(self, staff_id: int, draft: StaffDraft) -> None:
        for ward in list(self._wards.wards.values()):
            if ward.clerk_id == staff_id:
                self._wards.set_clerk(ward.id, None)
        if draft.role == StaffRole.CLERK and draft.ward_ids:
            self._wards.set_clerk(draft.ward_ids[0], staff_id)

    def add(self, principal: StaffPrincipal, password_hash: str = PASSWORD_HASH) -> StaffPrincipal:
        if principal.id >= self._next_id:
            self._next_id = principal.id + 1
        self.rows[principal.id] = StaffRecord(principal=principal, password_hash=password_hash)
        if principal.role == StaffRole.CLERK and principal.ward_ids:
            self._wards.set_clerk(principal.ward_ids[0], principal.id)
        return principal

    def get_by_id(self, staff_id):
        return self.rows.get(staff_id)

    def find_by_identifier(self, identifier):
        for record in self.rows.values():
            p = record.principal
            if identifier in (p.employee_code, p.email, p.phone_number, p.username):
                return record
        return None

    def find_duplicate_field(self, *, email, phone_number, username=None, exclude_id=None):
        for field, value in (("email", email), ("phone_number", phone_number), ("username", username)):
            if not value:
                continue
            for record in self.rows.values():
                if record.principal.id != exclude_id and getattr(record.principal, field) == value:
                    return field
        return None

    def count_by_role(self, role):
        return sum(1 for r in self.rows.values() if r.principal.role == role)

    def _principal(self, staff_id, *, employee_code, username, draft: StaffDraft) -> StaffPrincipal:
        return StaffPrincipal(
            id=staff_id,
            employee_code=employee_code,
            full_name=draft.full_name,
            email=draft.email,
            phone_number=draft.phone_number,
            username=username,
            role=draft.role,
            status=draft.status,
            ward_ids=tuple(draft.ward_ids),
            ward_id=draft.ward_id,
            ulb_id=draft.ulb_id,
            eo_id=draft.eo_id,
            supervisor_id=draft.supervisor_id,
            contractor_id=draft.contractor_id,
        )

    def create(self, *, employee_code, username, password_hash, draft):
        self.create_calls.append(employee_code)
        principal = self._principal(self._next_id, employee_code=employee_code, username=username, draft=draft)
        self._check_unique(principal)
        self._next_id += 1
        self.rows[principal.id] = StaffRecord(principal=principal, password_hash=password_hash)
        self._write_wards(principal.id, draft)
        return principal.id

    def update(self, staff_id, *, draft):
        current = self.rows.get(staff_id)
        if current is None:
            return False
        p = current.principal
        principal = self._principal(staff_id, employee_code=p.employee_code, username=p.username, draft=draft)
        self._check_unique(principal, exclude_id=staff_id)
        self.rows[staff_id] = StaffRecord(principal=replace(principal, last_login_at=p.last_login_at), password_hash=current.password_hash)
        self._write_wards(staff_id, draft)
        return True

    def set_status(self, staff_id, *, status):
        current = self.rows.get(staff_id)
        if current is None:
            return False
        self.rows[staff_id] = replace(current, principal=replace(current.principal, status=status))
        return True

    def set_password(self, staff_id, *, password_hash):
        current = self.rows.get(staff_id)
        if current is None:
            return False
        self.rows[staff_id] = replace(current, password_hash=password_hash)
        return True

    def touch_last_login(self, staff_id, *, at):
        current = self.rows[staff_id]
        self.rows[staff_id] = replace(current, principal=replace(current.principal, last_login_at=at))

    def delete(self, staff_id):
        if staff_id not in self.rows:
            return False
        for ward in list(self._wards.wards.values()):
            if ward.clerk_id == staff_id:
                self._wards.set_clerk(ward.id, None)
        del self.rows[staff_id]
        return True

    def list_staff(self, *, role=None, status=None, search=None, ulb_id=None, roles=None, limit=50, offset=0):
        out = []
        for record in sorted(self.rows.values(), key=lambda r: -r.principal.id):
            p = record.principal
            if role and p.role != role:
                continue
            if roles is not None and p.role not in roles:
                continue
            if status and p.status != status:
                continue
            if ulb_id is not None and p.ulb_id != ulb_id:
                continue
            if search and search.lower() not in f"{p.full_name} {p.email} {p.employee_code}".lower():
                continue
            out.append(p)
        return out[offset : offset + limit]

    def list_children(self, staff_id):
        return [
            r.principal
            for r in sorted(self.rows.values(), key=lambda r: r.principal.id)
            if staff_id in (r.principal.eo_id, r.principal.supervisor_id, r.principal.contractor_id)
        ]

    def list_by_ward(self, ward_id):
        return [
            r.principal
            for r in self.rows.values()
            if r.principal.ward_id == ward_id or ward_id in r.principal.ward_ids
        ]


class InMemoryUsers:
    def __init__(self):
        self.rows: dict[int, UserRecord] = {}

    def add(self, principal: GenericPrincipal, password_hash: str = PASSWORD_HASH) -> GenericPrincipal:
        self.rows[principal.id] = UserRecord(principal=principal, password_hash=password_hash)
        return principal

    def get_by_id(self, user_id):
        return self.rows.get(user_id)

    def get_by_email(self, email):
        for record in self.rows.values():
            if record.principal.email == email:
                return record
        return None

    def set_password(self, user_id, *, password_hash):
        current = self.rows.get(user_id)
        if current is None:
            return False
        self.rows[user_id] = replace(current, password_hash=password_hash)
        return True


class InMemoryTasks:
    def __init__(self):
        self.rows: dict[int, WorkerTask] = {}
        self._next_id = 1
        self.last_filter = None

    def create(self, task: NewTask):
        task_id = self._next_id
        self._next_id += 1
        self.rows[task_id] = WorkerTask(
            id=task_id,
            worker_id=task.worker_id,
            supervisor_id=task.supervisor_id,
            ward_id=task.ward_id,
            ulb_id=task.ulb_id,
            task_type=task.task_type,
            area_street=task.area_street,
            shift=task.shift,
            assigned_date=task.assigned_date,
            special_instructions=task.special_instructions,
        )
        return task_id

    def get(self, task_id):
        return self.rows.get(task_id)

    def update(self, task_id, changes):
        if task_id not in self.rows:
            return False
        self.rows[task_id] = replace(self.rows[task_id], **changes)
        return True

    def list_tasks(self, *, ward_ids, supervisor_id=None, worker_id=None, status=None, assigned_date=None, limit=50, offset=0):
        self.last_filter = {"ward_ids": ward_ids, "supervisor_id": supervisor_id, "worker_id": worker_id}
        out = []
        for task in self.rows.values():
            if ward_ids is not None and task.ward_id not in ward_ids:
                continue
            if supervisor_id is not None and task.supervisor_id != supervisor_id:
                continue
            if worker_id is not None and task.worker_id != worker_id:
                continue
            if status is not None and task.status != status:
                continue
            if assigned_date is not None and task.assigned_date != assigned_date:
                continue
            out.append(task)
        return out[offset : offset + limit]


class InMemoryAttendance:
    def __init__(self):
        self.rows: dict[int, AttendanceSession] = {}
        self._next_id = 1
        self.fail_with: Optional[Exception] = None

    def latest_open(self, principal_id, usertype):
        if self.fail_with:
            raise self.fail_with
        open_rows = [
            s for s in self.rows.values() if s.principal_id == principal_id and s.usertype == usertype and s.is_open
        ]
        open_rows.sort(key=lambda s: (s.login_at, s.id), reverse=True)
        return open_rows[0] if open_rows else None

    def create_open(self, *, principal_id, usertype, login_at, device, geo):
        session_id = self._next_id
        self._next_id += 1
        self.rows[session_id] = AttendanceSession(
            id=session_id,
            principal_id=principal_id,
            usertype=usertype,
            login_at=login_at,
            device=device,
            geo=geo,
        )
        return session_id

    def close(self, session_id, *, logout_at, working_duration_minutes):
        current = self.rows[session_id]
        if not current.is_open:
            return False
        self.rows[session_id] = replace(current, logout_at=logout_at, working_duration_minutes=working_duration_minutes)
        return True

    def get(self, session_id):
        return self.rows.get(session_id)

    def list_for_principal(self, principal_id, usertype, *, limit):
        rows = [s for s in self.rows.values() if s.principal_id == principal_id and s.usertype == usertype]
        rows.sort(key=lambda s: (s.login_at, s.id), reverse=True)
        return rows[:limit]

    def open_sessions(self, principal_id):
        return [s for s in self.rows.values() if s.principal_id == principal_id and s.is_open]


class InMemoryShops:
    def __init__(self):
        self.rows: dict[int, Shop] = {}

    def add(self, shop_id: int, ward_id: int, status: ShopStatus = ShopStatus.ACTIVE) -> Shop:
        shop = Shop(id=shop_id, shop_number=f"SH-{shop_id}", shop_name=f"Shop {shop_id}", ward_id=ward_id, status=status)
        self.rows[shop_id] = shop
        return shop

    def get(self, shop_id):
        return self.rows.get(shop_id)


class InMemoryAssessments:
    def __init__(self, shops: InMemoryShops):
        self._shops = shops
        self.rows: dict[int, ShopTaxAssessment] = {}
        self._next_id = 1
        # simulate a concurrent writer the pre-check cannot see
        self.hide_existing = False
        self.last_ward_filter = "unset"

    def _with_shop(self, a: ShopTaxAssessment) -> ShopTaxAssessment:
        shop = self._shops.get(a.shop_id)
        return replace(a, ward_id=shop.ward_id if shop else None, shop_status=shop.status if shop else None)

    def get(self, assessment_id):
        a = self.rows.get(assessment_id)
        return self._with_shop(a) if a else None

    def find_for_period(self, shop_id, assessment_year):
        if self.hide_existing:
            return None
        for a in self.rows.values():
            if a.shop_id == shop_id and a.assessment_year == assessment_year:
                return self._with_shop(a)
        return None

    def count_numbers(self, prefix):
        return sum(1 for a in self.rows.values() if a.assessment_number.startswith(prefix))

    def create(self, data: NewAssessment, *, assessment_number):
        for a in self.rows.values():
            if a.assessment_number == assessment_number:
                raise DuplicateKeyError("uq_assessment_number")
            if a.shop_id == data.shop_id and a.assessment_year == data.assessment_year:
                raise DuplicateKeyError("uq_assessment_shop_year")
        assessment_id = self._next_id
        self._next_id += 1
        self.rows[assessment_id] = ShopTaxAssessment(
            id=assessment_id,
            assessment_number=assessment_number,
            shop_id=data.shop_id,
            assessment_year=data.assessment_year,
            financial_year=data.financial_year,
            annual_tax_amount=data.annual_tax_amount,
            assessor_id=data.assessor_id,
            assessed_value=data.assessed_value,
            rate=data.rate,
            remarks=data.remarks,
        )
        return assessment_id

    def update_fields(self, assessment_id, changes):
        current = self.rows[assessment_id]
        if current.status != AssessmentStatus.DRAFT:
            return False
        self.rows[assessment_id] = replace(current, **changes)
        return True

    def transition(self, assessment_id, *, from_status, to_status, approver_id=None, approval_date=None, remarks=None):
        current = self.rows[assessment_id]
        if current.status != from_status:
            return False
        changes = {"status": to_status}
        if approver_id is not None:
            changes["approver_id"] = approver_id
        if approval_date is not None:
            changes["approval_date"] = approval_date
        if remarks is not None:
            changes["remarks"] = remarks
        self.rows[assessment_id] = replace(current, **changes)
        return True

    def list_assessments(self, *, ward_ids, shop_id=None, status=None, assessment_year=None, limit=50, offset=0):
        self.last_ward_filter = ward_ids
        out = []
        for a in map(self._with_shop, self.rows.values()):
            if ward_ids is not None and a.ward_id not in ward_ids:
                continue
            if shop_id is not None and a.shop_id != shop_id:
                continue
            if status is not None and a.status != status:
                continue
            if assessment_year is not None and a.assessment_year != assessment_year:
                continue
            out.append(a)
        return out[offset : offset + limit]


def staff(
    staff_id: int,
    role: StaffRole,
    *,
    ward_ids=(),
    ward_id=None,
    ulb_id=None,
    eo_id=None,
    supervisor_id=None,
    contractor_id=None,
    status: StaffStatus = StaffStatus.ACTIVE,
) -> StaffPrincipal:
    code = f"T{staff_id:03d}"
    return StaffPrincipal(
        id=staff_id,
        employee_code=code,
        full_name=f"{role.value.title()} {staff_id}",
        email=f"staff{staff_id}@ulb.test",
        phone_number=f"90000{staff_id:05d}",
        username=code,
        role=role,
        status=status,
        ward_ids=tuple(ward_ids),
        ward_id=ward_id,
        ulb_id=ulb_id,
        eo_id=eo_id,
        supervisor_id=supervisor_id,
        contractor_id=contractor_id,
    )


def context_for(principal) -> RequestContext:
    return RequestContext(principal=principal, scope=resolve_scope(principal))


class World:
    """ULB 1 holds wards 7 and 12, ULB 2 holds ward 20; ward 30 has no ULB."""

    def __init__(self):
        self.wards = InMemoryWards()
        self.wards.add(7, 1)
        self.wards.add(12, 1)
        self.wards.add(20, 2)
        self.wards.add(30, None)

        self.staff = InMemoryStaff(self.wards)
        self.users = InMemoryUsers()
        self.tasks = InMemoryTasks()
        self.attendance = InMemoryAttendance()
        self.shops = InMemoryShops()
        self.assessments = InMemoryAssessments(self.shops)

        self.admin = self.users.add(
            GenericPrincipal(id=1, role=UserRole.ADMIN, email="admin@ulb.test", full_name="Admin")
        )
        self.citizen = self.users.add(
            GenericPrincipal(id=2, role=UserRole.CITIZEN, email="citizen@ulb.test", full_name="Citizen")
        )

        self.eo = self.staff.add(staff(10, StaffRole.EO, ward_ids=(7, 12), ulb_id=1))
        self.supervisor = self.staff.add(staff(11, StaffRole.SUPERVISOR, ward_id=7, ulb_id=1, eo_id=10))
        self.worker = self.staff.add(staff(12, StaffRole.FIELD_WORKER, ward_id=7, ulb_id=1, eo_id=10, supervisor_id=11))
        self.clerk = self.staff.add(staff(13, StaffRole.CLERK, ward_ids=(12,)))
        self.officer = self.staff.add(staff(14, StaffRole.OFFICER, ward_ids=(7,)))
        self.collector = self.staff.add(staff(15, StaffRole.COLLECTOR))
        self.inspector = self.staff.add(staff(16, StaffRole.INSPECTOR, ward_ids=(7,)))
        self.eo2 = self.staff.add(staff(17, StaffRole.EO, ward_ids=(20,), ulb_id=2))

        self.container = assemble(
            users_repo=self.users,
            staff_repo=self.staff,
            wards_repo=self.wards,
            tasks_repo=self.tasks,
            attendance_repo=self.attendance,
            shops_repo=self.shops,
            assessments_repo=self.assessments,
            secret_key="test-secret",
        )

    def ctx(self, principal) -> RequestContext:
        return context_for(self.principal(principal))

    def principal(self, principal):
        """Fresh copy from the store (tests mutate rows between steps)."""
        if isinstance(principal, StaffPrincipal):
            return self.staff.get_by_id(principal.id).principal
        return principal

    def token(self, principal) -> str:
        return self.container.tokens.issue(principal)


@pytest.fixture
def world() -> World:
    return World()


@pytest.fixture
def app(world, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    from ulb_staff.main import create_app

    return create_app(world.container)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_header(world):
    def _header(principal) -> dict:
        return {"Authorization": f"Bearer {world.token(principal)}"}

    return _header


@pytest.fixture
def make_staff():
    return staff


@pytest.fixture
def password() -> str:
    return PASSWORD
