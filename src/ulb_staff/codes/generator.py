from __future__ import annotations

import logging
import secrets
import string
from typing import Callable, Collection, TypeVar

from ..core.constants import (
    ASSESSMENT_NUMBER_PREFIXES,
    EMPLOYEE_CODE_PREFIXES,
    GENERATED_PASSWORD_LENGTH,
    MAX_CODE_ATTEMPTS,
)
from ..core.enums import AssessmentType, StaffRole
from ..core.exceptions import GenerationExhausted
from ..database.errors import DuplicateKeyError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def format_employee_code(role: StaffRole, sequence: int) -> str:
    return f"{EMPLOYEE_CODE_PREFIXES[role]}-{sequence:04d}"


def format_assessment_number(kind: AssessmentType, year: int, sequence: int) -> str:
    return f"{ASSESSMENT_NUMBER_PREFIXES[kind]}-{int(year)}-{sequence:05d}"


def generate_password(length: int = GENERATED_PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))


def create_with_code(
    *,
    count: Callable[[], int],
    make_code: Callable[[int], str],
    insert: Callable[[str], T],
    code_keys: Collection[str],
    max_attempts: int = MAX_CODE_ATTEMPTS,
) -> T:
    """Insert a row under a sequential code, retrying on code collisions.

    The existing count is read once; attempt ``n`` uses sequence
    ``count + n``. Only a violation of one of ``code_keys`` triggers a retry, any
    other duplicate key propagates to the caller.
    """
    base = int(count())
    for attempt in range(1, max_attempts + 1):
        code = make_code(base + attempt)
        try:
            return insert(code)
        except DuplicateKeyError as e:
            if e.key not in code_keys:
                raise
            logger.warning("Code %s already taken (attempt %d/%d)", code, attempt, max_attempts)
    raise GenerationExhausted(max_attempts)
