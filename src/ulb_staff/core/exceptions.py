from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    kind = "DomainError"
    status_code = 400

    def __init__(self, message: str = "", *, details: Optional[dict] = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.details = details or {}


class UnauthorizedReason(str, Enum):
    MISSING_TOKEN = "MISSING_TOKEN"
    MALFORMED = "MALFORMED"
    EXPIRED = "EXPIRED"
    NOT_YET_VALID = "NOT_YET_VALID"
    PRINCIPAL_NOT_FOUND = "PRINCIPAL_NOT_FOUND"
    INACTIVE = "INACTIVE"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"


class UnauthorizedError(DomainError):
    """Missing/invalid/expired token, or a missing/inactive principal."""

    kind = "Unauthorized"
    status_code = 401

    def __init__(self, reason: UnauthorizedReason, message: str = ""):
        super().__init__(message or f"Unauthorized: {reason.value}", details={"reason": reason.value})
        self.reason = reason


class ForbiddenError(DomainError):
    """Raised when scope or role does not allow the action."""

    kind = "Forbidden"
    status_code = 403


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "Validation"
    status_code = 400


class NotFoundError(DomainError):
    kind = "NotFound"
    status_code = 404


class ConflictError(DomainError):
    """Uniqueness violations."""

    kind = "Conflict"
    status_code = 409


class PreconditionFailedError(DomainError):
    """Subject closed, or the record is in the wrong workflow state."""

    kind = "PreconditionFailed"
    status_code = 412


class InternalError(DomainError):
    kind = "Internal"
    status_code = 500


class InvalidWard(ValidationError):
    def __init__(self, ward_id, message: str = ""):
        super().__init__(message or f"Ward {ward_id} is invalid or not linked to an ULB", details={"ward_id": ward_id})
        self.ward_id = ward_id


class WardUlbMismatch(ForbiddenError):
    def __init__(self, ulb_id, ward_ids: Iterable[int]):
        offending = sorted(ward_ids)
        super().__init__(
            f"Wards {offending} do not belong to ULB {ulb_id}",
            details={"ulb_id": ulb_id, "ward_ids": offending},
        )
        self.ulb_id = ulb_id
        self.ward_ids = offending


class InvalidParent(ValidationError):
    def __init__(self, field: str, parent_id, message: str = ""):
        super().__init__(message or f"Invalid {field}: {parent_id}", details={"field": field, "parent_id": parent_id})
        self.field = field
        self.parent_id = parent_id


class WorkerNotEligible(ForbiddenError):
    def __init__(self, worker_id, reason: str):
        super().__init__(f"Worker {worker_id} is not eligible: {reason}", details={"worker_id": worker_id, "reason": reason})
        self.worker_id = worker_id
        self.reason = reason


class DuplicateStaffError(ConflictError):
    def __init__(self, field: str):
        super().__init__(f"Employee with this {field} already exists", details={"field": field})
        self.field = field


class DuplicateForPeriod(ConflictError):
    def __init__(self, subject_id, period):
        super().__init__(
            f"An assessment for subject {subject_id} already exists for {period}",
            details={"subject_id": subject_id, "period": period},
        )


class SubjectClosed(PreconditionFailedError):
    def __init__(self, subject_id):
        super().__init__(f"Subject {subject_id} is closed", details={"subject_id": subject_id})


class InvalidTransition(PreconditionFailedError):
    def __init__(self, current, action: str):
        current_value = getattr(current, "value", current)
        super().__init__(
            f"Cannot {action} a record in state '{current_value}'",
            details={"state": current_value, "action": action},
        )
        self.current = current
        self.action = action


class GenerationExhausted(InternalError):
    def __init__(self, attempts: int):
        super().__init__(f"Unable to generate a unique code after {attempts} attempts", details={"attempts": attempts})
        self.attempts = attempts
