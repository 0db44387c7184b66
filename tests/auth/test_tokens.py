from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from ulb_staff.auth.tokens import TokenCodec
from ulb_staff.core.enums import StaffRole, StoreKind, UserRole
from ulb_staff.core.exceptions import UnauthorizedError, UnauthorizedReason
from ulb_staff.principals.model import GenericPrincipal, StaffPrincipal

SECRET = "unit-secret"


def _supervisor() -> StaffPrincipal:
    return StaffPrincipal(
        id=11,
        employee_code="SUP-0001",
        full_name="Sup",
        email="sup@ulb.test",
        phone_number="9000000011",
        username="SUP-0001",
        role=StaffRole.SUPERVISOR,
        ward_id=7,
        ulb_id=1,
        eo_id=10,
    )


def test_staff_token_carries_only_present_hierarchy_claims():
    codec = TokenCodec(SECRET)
    token = codec.issue(_supervisor())

    raw = jwt.decode(token, SECRET, algorithms=["HS256"])
    assert raw["sub"] == "11"
    assert raw["store"] == "staff"
    assert raw["role"] == "SUPERVISOR"
    assert raw["ward_ids"] == []
    assert raw["ward_id"] == 7
    assert raw["ulb_id"] == 1
    assert raw["eo_id"] == 10
    assert "supervisor_id" not in raw
    assert "contractor_id" not in raw


def test_generic_token_has_no_hierarchy_claims():
    codec = TokenCodec(SECRET)
    admin = GenericPrincipal(id=1, role=UserRole.ADMIN, email="a@ulb.test", full_name="A")

    raw = jwt.decode(codec.issue(admin), SECRET, algorithms=["HS256"])
    assert raw["store"] == "user"
    assert raw["role"] == "admin"
    assert raw["ward_ids"] == []
    for name in ("ulb_id", "ward_id", "eo_id", "supervisor_id", "contractor_id", "employee_code"):
        assert name not in raw


def test_verify_returns_claims():
    codec = TokenCodec(SECRET)
    claims = codec.verify(codec.issue(_supervisor()))

    assert claims.principal_id == 11
    assert claims.store == StoreKind.STAFF
    assert claims.role == "SUPERVISOR"
    assert claims.ward_id == 7
    assert claims.supervisor_id is None
    assert claims.expires_at - claims.issued_at == timedelta(hours=24)


def test_expired_token_is_rejected():
    codec = TokenCodec(SECRET, ttl_hours=1)
    token = codec.issue(_supervisor(), now=datetime.now(timezone.utc) - timedelta(hours=2))

    with pytest.raises(UnauthorizedError) as exc:
        codec.verify(token)
    assert exc.value.reason == UnauthorizedReason.EXPIRED


def test_token_not_yet_valid_is_rejected():
    codec = TokenCodec(SECRET)
    token = codec.issue(_supervisor(), now=datetime.now(timezone.utc) + timedelta(hours=1))

    with pytest.raises(UnauthorizedError) as exc:
        codec.verify(token)
    assert exc.value.reason == UnauthorizedReason.NOT_YET_VALID


@pytest.mark.parametrize("token", ["not-a-jwt", "a.b.c", ""])
def test_garbage_is_malformed(token):
    with pytest.raises(UnauthorizedError) as exc:
        TokenCodec(SECRET).verify(token)
    assert exc.value.reason == UnauthorizedReason.MALFORMED


def test_wrong_signature_is_malformed():
    token = TokenCodec("other-secret").issue(_supervisor())

    with pytest.raises(UnauthorizedError) as exc:
        TokenCodec(SECRET).verify(token)
    assert exc.value.reason == UnauthorizedReason.MALFORMED


def test_missing_store_claim_is_malformed():
    now = datetime.now(timezone.utc)
    token = jwt.encode({"sub": "1", "role": "admin", "exp": now + timedelta(hours=1)}, SECRET, algorithm="HS256")

    with pytest.raises(UnauthorizedError) as exc:
        TokenCodec(SECRET).verify(token)
    assert exc.value.reason == UnauthorizedReason.MALFORMED


def test_unknown_store_claim_is_malformed():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "1", "role": "admin", "store": "robots", "exp": now + timedelta(hours=1)},
        SECRET,
        algorithm="HS256",
    )

    with pytest.raises(UnauthorizedError) as exc:
        TokenCodec(SECRET).verify(token)
    assert exc.value.reason == UnauthorizedReason.MALFORMED


def test_secret_is_required():
    with pytest.raises(ValueError):
        TokenCodec("")
