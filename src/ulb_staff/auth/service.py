from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..attendance.model import DeviceInfo, GeoPoint
from ..attendance.recorder import AttendanceRecorder
from ..common.datetime_utils import now_utc
from ..common.validators import require_min_length, require_non_empty
from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.exceptions import UnauthorizedError, UnauthorizedReason, ValidationError
from ..principals.model import Principal, StaffPrincipal
from ..principals.repository import StaffRepository, UserRepository
from ..principals.store import PrincipalStore
from .enforcer import RequestContext
from .tokens import TokenCodec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    token: str
    principal: Principal
    expires_in: int

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "token_type": "Bearer",
            "expires_in": self.expires_in,
            "user": self.principal.to_dict(),
        }


def _password_ok(password_hash: str, password: str) -> bool:
    try:
        return check_password_hash(password_hash, password)
    except (TypeError, ValueError):
        # placeholder or corrupted hashes
        return False


def _invalid_credentials() -> UnauthorizedError:
    return UnauthorizedError(UnauthorizedReason.INVALID_CREDENTIALS, "Invalid credentials")


class AuthService:
    """Login, logout and self-service use cases for both identity stores."""

    def __init__(
        self,
        principals: PrincipalStore,
        staff: StaffRepository,
        users: UserRepository,
        tokens: TokenCodec,
        recorder: AttendanceRecorder,
        *,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._principals = principals
        self._staff = staff
        self._users = users
        self._tokens = tokens
        self._recorder = recorder
        self._clock = clock

    def _result(self, principal: Principal) -> LoginResult:
        return LoginResult(
            token=self._tokens.issue(principal),
            principal=principal,
            expires_in=int(self._tokens.ttl.total_seconds()),
        )

    def staff_login(
        self,
        identifier: str,
        password: str,
        *,
        device: Optional[DeviceInfo] = None,
        geo: Optional[GeoPoint] = None,
    ) -> LoginResult:
        """Employee code, email, phone number or username plus password."""
        identifier = require_non_empty(identifier, "identifier")
        require_non_empty(password, "password")

        record = self._principals.find_staff_by_identifier(identifier)
        if not record or not _password_ok(record.password_hash, password):
            logger.info("Failed staff login for %r", identifier)
            raise _invalid_credentials()
        if not record.principal.is_active:
            raise UnauthorizedError(UnauthorizedReason.INACTIVE, "Account is inactive")

        self._staff.touch_last_login(record.principal.id, at=self._clock())
        result = self._result(record.principal)
        self._recorder.on_login(record.principal, device, geo)
        return result

    def login(
        self,
        email: str,
        password: str,
        *,
        device: Optional[DeviceInfo] = None,
        geo: Optional[GeoPoint] = None,
    ) -> LoginResult:
        email = require_non_empty(email, "email")
        require_non_empty(password, "password")

        record = self._principals.find_user_by_email(email)
        if not record or not _password_ok(record.password_hash, password):
            logger.info("Failed login for %r", email)
            raise _invalid_credentials()
        if not record.principal.is_active:
            raise UnauthorizedError(UnauthorizedReason.INACTIVE, "Account is inactive")

        result = self._result(record.principal)
        self._recorder.on_login(record.principal, device, geo)
        return result

    def logout(self, ctx: RequestContext) -> None:
        # The token stays valid until it expires; logout only closes attendance.
        self._recorder.on_logout(ctx.principal)

    def me(self, ctx: RequestContext) -> dict:
        data = ctx.principal.to_dict()
        data["scope"] = ctx.scope.to_dict()
        return data

    def refresh(self, ctx: RequestContext) -> LoginResult:
        return self._result(ctx.principal)

    def change_password(self, ctx: RequestContext, *, current_password: str, new_password: str) -> None:
        require_non_empty(current_password, "current_password")
        require_min_length(new_password, "new_password", MIN_PASSWORD_LENGTH)

        principal = ctx.principal
        if isinstance(principal, StaffPrincipal):
            record = self._principals.get_staff_record(principal.id)
        else:
            record = self._principals.get_user_record(principal.id)
        if record is None:
            raise UnauthorizedError(UnauthorizedReason.PRINCIPAL_NOT_FOUND, "Account not found")
        if not _password_ok(record.password_hash, current_password):
            raise ValidationError("Current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must differ from the current one")

        new_hash = generate_password_hash(new_password)
        if isinstance(principal, StaffPrincipal):
            self._staff.set_password(principal.id, password_hash=new_hash)
        else:
            self._users.set_password(principal.id, password_hash=new_hash)
        logger.info("%s %s changed their password", principal.store.value, principal.id)
