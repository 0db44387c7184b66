from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional

from ..core.enums import ScopeKind, StaffRole, UserRole
from ..principals.model import GenericPrincipal, Principal, StaffPrincipal


@dataclass(frozen=True)
class Scope:
    """Set of wards a principal may act on.

    ``ALL`` may still carry ``ward_ids`` (officers); they are informational
    and never restrict access.
    """

    kind: ScopeKind
    ward_ids: FrozenSet[int] = field(default_factory=frozenset)
    ulb_id: Optional[int] = None

    @classmethod
    def all(cls, ward_ids: Iterable[int] = ()) -> "Scope":
        return cls(ScopeKind.ALL, frozenset(ward_ids))

    @classmethod
    def wards(cls, ward_ids: Iterable[int], *, ulb_id: Optional[int] = None) -> "Scope":
        ids = frozenset(int(w) for w in ward_ids if w is not None)
        if not ids:
            return cls.denied()
        return cls(ScopeKind.WARDS, ids, ulb_id)

    @classmethod
    def denied(cls) -> "Scope":
        return cls(ScopeKind.DENIED)

    @property
    def is_all(self) -> bool:
        return self.kind == ScopeKind.ALL

    @property
    def is_denied(self) -> bool:
        return self.kind == ScopeKind.DENIED

    def allows(self, ward_id: Optional[int]) -> bool:
        if self.kind == ScopeKind.ALL:
            return True
        if self.kind == ScopeKind.DENIED or ward_id is None:
            return False
        return int(ward_id) in self.ward_ids

    def ward_filter(self) -> Optional[FrozenSet[int]]:
        """None means unrestricted; otherwise the IN-set for a ward column."""
        if self.kind == ScopeKind.ALL:
            return None
        if self.kind == ScopeKind.DENIED:
            return frozenset()
        return self.ward_ids

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "ward_ids": sorted(self.ward_ids), "ulb_id": self.ulb_id}


def _staff_scope(principal: StaffPrincipal) -> Scope:
    role = principal.role
    if role in (StaffRole.COLLECTOR, StaffRole.ADMIN):
        return Scope.all()
    if role == StaffRole.OFFICER:
        return Scope.all(principal.ward_ids)
    if role in (StaffRole.CLERK, StaffRole.INSPECTOR):
        return Scope.wards(principal.ward_ids)
    if role == StaffRole.EO:
        return Scope.wards(principal.ward_ids, ulb_id=principal.ulb_id)
    if role in (StaffRole.SUPERVISOR, StaffRole.FIELD_WORKER, StaffRole.CONTRACTOR):
        if principal.ward_id is None:
            return Scope.denied()
        return Scope.wards([principal.ward_id], ulb_id=principal.ulb_id)
    return Scope.denied()


def resolve_scope(principal: Principal) -> Scope:
    """Derive the ward scope from the principal's stored attributes only."""
    if isinstance(principal, StaffPrincipal):
        return _staff_scope(principal)
    if isinstance(principal, GenericPrincipal) and principal.role == UserRole.ADMIN:
        return Scope.all()
    # citizens are authorized by ownership elsewhere
    return Scope.denied()
