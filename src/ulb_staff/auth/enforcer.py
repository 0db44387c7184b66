from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

from ..core.enums import StaffRole, UserRole
from ..core.exceptions import (
    ForbiddenError,
    UnauthorizedError,
    UnauthorizedReason,
    ValidationError,
)
from ..principals.model import GenericPrincipal, Principal, StaffPrincipal
from ..principals.store import PrincipalStore
from .scope import Scope, resolve_scope
from .tokens import TokenClaims, TokenCodec

logger = logging.getLogger(__name__)

AnyRole = Union[UserRole, StaffRole]


@dataclass(frozen=True)
class RequestContext:
    """Authenticated principal plus its resolved scope, built once per request."""

    principal: Principal
    scope: Scope
    claims: Optional[TokenClaims] = None

    @property
    def principal_id(self) -> int:
        return self.principal.id

    @property
    def is_staff(self) -> bool:
        return isinstance(self.principal, StaffPrincipal)

    def has_role(self, *roles: AnyRole) -> bool:
        return principal_has_role(self.principal, roles)


def principal_has_role(principal: Principal, roles: Iterable[AnyRole]) -> bool:
    """Staff roles only match staff principals, user roles only generic ones."""
    for role in roles:
        if isinstance(role, StaffRole) and isinstance(principal, StaffPrincipal):
            if principal.role == role:
                return True
        elif isinstance(role, UserRole) and isinstance(principal, GenericPrincipal):
            if principal.role == role:
                return True
    return False


def extract_bearer(authorization_header: Optional[str]) -> str:
    if not authorization_header or not authorization_header.strip():
        raise UnauthorizedError(UnauthorizedReason.MISSING_TOKEN, "Authorization token is required")
    parts = authorization_header.strip().split()
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        raise UnauthorizedError(UnauthorizedReason.MALFORMED, "Authorization header must be 'Bearer <token>'")
    return parts[1]


class AccessEnforcer:
    def __init__(self, tokens: TokenCodec, principals: PrincipalStore):
        self._tokens = tokens
        self._principals = principals

    def authenticate(self, authorization_header: Optional[str], *, ward_scoped: bool = True) -> RequestContext:
        token = extract_bearer(authorization_header)
        claims = self._tokens.verify(token)

        # Never trust the token alone: the principal may be gone or deactivated.
        principal = self._principals.lookup(claims.principal_id, claims.store)
        if principal is None:
            raise UnauthorizedError(UnauthorizedReason.PRINCIPAL_NOT_FOUND, "Account not found")
        if not principal.is_active:
            raise UnauthorizedError(UnauthorizedReason.INACTIVE, "Account is inactive")

        scope = resolve_scope(principal)
        if ward_scoped and scope.is_denied:
            logger.info("Scope denied for %s principal %s (%s)", principal.store.value, principal.id, principal.role_name)
            raise ForbiddenError("No ward access assigned to this account")

        return RequestContext(principal=principal, scope=scope, claims=claims)

    @staticmethod
    def require_specific_ward_access(ctx: RequestContext, ward_id: Any) -> int:
        """Check one ward id taken from path/query/body against the scope."""
        if ward_id is None or ward_id == "" or isinstance(ward_id, bool):
            raise ValidationError("ward_id is required")
        try:
            ward = int(ward_id)
        except (TypeError, ValueError):
            raise ValidationError("ward_id must be an integer")
        if not ctx.scope.allows(ward):
            raise ForbiddenError(f"Access to ward {ward} is not allowed", details={"ward_id": ward})
        return ward

    @staticmethod
    def require_roles(ctx: RequestContext, *roles: AnyRole) -> None:
        if not principal_has_role(ctx.principal, roles):
            raise ForbiddenError("Your role is not allowed to perform this action")
