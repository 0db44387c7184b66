from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt

from ..core.constants import DEFAULT_TOKEN_TTL_HOURS
from ..core.enums import StoreKind
from ..core.exceptions import UnauthorizedError, UnauthorizedReason
from ..principals.model import Principal, StaffPrincipal

# Hierarchy claims are written only when the principal has a value for them.
_OPTIONAL_CLAIMS = ("ulb_id", "ward_id", "eo_id", "supervisor_id", "contractor_id", "employee_code")


@dataclass(frozen=True)
class TokenClaims:
    principal_id: int
    store: StoreKind
    role: str
    ward_ids: Tuple[int, ...] = field(default_factory=tuple)
    ulb_id: Optional[int] = None
    ward_id: Optional[int] = None
    eo_id: Optional[int] = None
    supervisor_id: Optional[int] = None
    contractor_id: Optional[int] = None
    employee_code: Optional[str] = None
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class TokenCodec:
    """Signs and verifies bearer session tokens (JWT).

    Tokens are stateless and cannot be revoked before ``exp``; the access
    layer re-checks the principal on every request instead.
    """

    def __init__(self, secret: str, *, algorithm: str = "HS256", ttl_hours: int = DEFAULT_TOKEN_TTL_HOURS):
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = timedelta(hours=int(ttl_hours))

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, principal: Principal, *, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload: dict = {
            "sub": str(principal.id),
            "store": principal.store.value,
            "role": principal.role_name,
            "ward_ids": [],
            "iat": now,
            "nbf": now,
            "exp": now + self._ttl,
        }
        if isinstance(principal, StaffPrincipal):
            payload["ward_ids"] = list(principal.ward_ids)
            for name in _OPTIONAL_CLAIMS:
                value = getattr(principal, name)
                if value is not None:
                    payload[name] = value
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp", "role", "store"]},
            )
        except jwt.ExpiredSignatureError:
            raise UnauthorizedError(UnauthorizedReason.EXPIRED, "Token has expired")
        except jwt.ImmatureSignatureError:
            raise UnauthorizedError(UnauthorizedReason.NOT_YET_VALID, "Token is not yet valid")
        except jwt.InvalidTokenError:
            raise UnauthorizedError(UnauthorizedReason.MALFORMED, "Invalid token")

        try:
            return TokenClaims(
                principal_id=int(payload["sub"]),
                store=StoreKind(payload["store"]),
                role=str(payload["role"]),
                ward_ids=tuple(int(w) for w in payload.get("ward_ids") or ()),
                ulb_id=payload.get("ulb_id"),
                ward_id=payload.get("ward_id"),
                eo_id=payload.get("eo_id"),
                supervisor_id=payload.get("supervisor_id"),
                contractor_id=payload.get("contractor_id"),
                employee_code=payload.get("employee_code"),
                issued_at=_from_epoch(payload.get("iat")),
                expires_at=_from_epoch(payload.get("exp")),
            )
        except (TypeError, ValueError):
            raise UnauthorizedError(UnauthorizedReason.MALFORMED, "Invalid token claims")


def _from_epoch(value) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)
