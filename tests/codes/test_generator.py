from __future__ import annotations

import pytest

from ulb_staff.codes.generator import (
    create_with_code,
    format_assessment_number,
    format_employee_code,
    generate_password,
)
from ulb_staff.core.enums import AssessmentType, StaffRole
from ulb_staff.core.exceptions import GenerationExhausted
from ulb_staff.database.errors import DuplicateKeyError, duplicate_key_name


class CollidingTable:
    """Rejects the first ``collisions`` codes as already taken."""

    def __init__(self, collisions: int, key: str = "uq_code"):
        self.collisions = collisions
        self.key = key
        self.attempts: list[str] = []

    def insert(self, code: str) -> str:
        self.attempts.append(code)
        if len(self.attempts) <= self.collisions:
            raise DuplicateKeyError(self.key)
        return code


def test_formats():
    assert format_employee_code(StaffRole.FIELD_WORKER, 7) == "FW-0007"
    assert format_employee_code(StaffRole.INSPECTOR, 12345) == "INSP-12345"
    assert format_assessment_number(AssessmentType.SHOP, 2025, 3) == "STA-2025-00003"


def test_generated_password_shape():
    password = generate_password()

    assert len(password) == 12
    assert password.isalnum()


def test_succeeds_on_fourth_attempt_after_three_collisions():
    table = CollidingTable(collisions=3)

    code = create_with_code(
        count=lambda: 5,
        make_code=lambda seq: f"C-{seq}",
        insert=table.insert,
        code_keys=("uq_code",),
    )

    assert code == "C-9"
    assert table.attempts == ["C-6", "C-7", "C-8", "C-9"]


def test_count_is_read_once():
    reads = []

    def count():
        reads.append(1)
        return 0

    create_with_code(
        count=count,
        make_code=str,
        insert=CollidingTable(collisions=2).insert,
        code_keys=("uq_code",),
    )
    assert len(reads) == 1


def test_gives_up_after_max_attempts():
    table = CollidingTable(collisions=100)

    with pytest.raises(GenerationExhausted) as exc:
        create_with_code(count=lambda: 0, make_code=str, insert=table.insert, code_keys=("uq_code",))

    assert len(table.attempts) == 10
    assert exc.value.status_code == 500


def test_other_unique_keys_are_not_retried():
    table = CollidingTable(collisions=1, key="uq_staff_email")

    with pytest.raises(DuplicateKeyError) as exc:
        create_with_code(count=lambda: 0, make_code=str, insert=table.insert, code_keys=("uq_code",))

    assert exc.value.key == "uq_staff_email"
    assert table.attempts == ["1"]


@pytest.mark.parametrize(
    "message, key",
    [
        ("Duplicate entry 'CLK-0001' for key 'uq_staff_employee_code'", "uq_staff_employee_code"),
        ("Duplicate entry 'a@b' for key 'admin_management.uq_staff_email'", "uq_staff_email"),
        ("something else", None),
    ],
)
def test_duplicate_key_name(message, key):
    assert duplicate_key_name(message) == key
