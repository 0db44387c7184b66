"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from .enums import AssessmentType, StaffRole

DEFAULT_TOKEN_TTL_HOURS = 24
DEFAULT_HISTORY_LIMIT = 30
DEFAULT_PAGE_LIMIT = 50

MAX_CODE_ATTEMPTS = 10
GENERATED_PASSWORD_LENGTH = 12
MIN_PASSWORD_LENGTH = 6

EMPLOYEE_CODE_PREFIXES = {
    StaffRole.CLERK: "CLK",
    StaffRole.INSPECTOR: "INSP",
    StaffRole.OFFICER: "OFF",
    StaffRole.COLLECTOR: "COL",
    StaffRole.EO: "EO",
    StaffRole.SUPERVISOR: "SUP",
    StaffRole.FIELD_WORKER: "FW",
    StaffRole.CONTRACTOR: "CON",
    StaffRole.ADMIN: "ADM",
}

ASSESSMENT_NUMBER_PREFIXES = {
    AssessmentType.SHOP: "STA",
    AssessmentType.WATER: "WTA",
}

# Desk roles: the only staff records an administrator may hard-delete.
DESK_STAFF_ROLES = frozenset({StaffRole.CLERK, StaffRole.INSPECTOR, StaffRole.OFFICER, StaffRole.COLLECTOR})

# Staff roles whose login/logout is tracked as attendance.
ATTENDANCE_ROLES = DESK_STAFF_ROLES

# Roles whose ward assignments must sit inside a single ULB.
ULB_SCOPED_ROLES = frozenset({StaffRole.EO, StaffRole.SUPERVISOR, StaffRole.FIELD_WORKER, StaffRole.CONTRACTOR})

# Roles that carry a single ward_id instead of ward_ids.
SINGLE_WARD_ID_ROLES = frozenset({StaffRole.SUPERVISOR, StaffRole.FIELD_WORKER, StaffRole.CONTRACTOR})

# Hierarchy rank; a parent link must point strictly upward.
ROLE_RANK = {
    StaffRole.ADMIN: 4,
    StaffRole.EO: 3,
    StaffRole.SUPERVISOR: 2,
    StaffRole.FIELD_WORKER: 1,
    StaffRole.CONTRACTOR: 1,
}
