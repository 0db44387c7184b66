from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .assessments.mysql_assessment_repository import MySQLAssessmentRepository, MySQLShopRepository
from .assessments.repository import AssessmentRepository, ShopRepository
from .assessments.service import AssessmentService
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.recorder import AttendanceRecorder
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceSessionManager
from .auth.enforcer import AccessEnforcer
from .auth.service import AuthService
from .auth.tokens import TokenCodec
from .core.constants import DEFAULT_TOKEN_TTL_HOURS
from .database.connection import DBConfig, DatabaseConnection
from .principals.mysql_staff_repository import MySQLStaffRepository
from .principals.mysql_user_repository import MySQLUserRepository
from .principals.repository import StaffRepository, UserRepository
from .principals.store import PrincipalStore
from .staff.hierarchy import HierarchyValidator
from .staff.service import StaffService
from .tasks.mysql_task_repository import MySQLTaskRepository
from .tasks.repository import TaskRepository
from .tasks.service import TaskService
from .wards.mysql_ward_repository import MySQLWardRepository
from .wards.repository import WardRepository


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    staff_repo: StaffRepository
    wards_repo: WardRepository
    tasks_repo: TaskRepository
    attendance_repo: AttendanceRepository
    shops_repo: ShopRepository
    assessments_repo: AssessmentRepository

    principals: PrincipalStore
    tokens: TokenCodec
    enforcer: AccessEnforcer
    hierarchy: HierarchyValidator
    attendance: AttendanceSessionManager
    attendance_recorder: AttendanceRecorder

    auth_service: AuthService
    staff_service: StaffService
    task_service: TaskService
    assessment_service: AssessmentService


def assemble(
    *,
    users_repo: UserRepository,
    staff_repo: StaffRepository,
    wards_repo: WardRepository,
    tasks_repo: TaskRepository,
    attendance_repo: AttendanceRepository,
    shops_repo: ShopRepository,
    assessments_repo: AssessmentRepository,
    secret_key: str,
    jwt_algorithm: str = "HS256",
    token_ttl_hours: int = DEFAULT_TOKEN_TTL_HOURS,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services on top of the given repositories (MySQL or in-memory)."""
    principals = PrincipalStore(users_repo, staff_repo)
    tokens = TokenCodec(secret_key, algorithm=jwt_algorithm, ttl_hours=token_ttl_hours)
    enforcer = AccessEnforcer(tokens, principals)
    hierarchy = HierarchyValidator(staff_repo, wards_repo)
    attendance = AttendanceSessionManager(attendance_repo)
    recorder = AttendanceRecorder(attendance)

    return Container(
        conn=conn,
        users_repo=users_repo,
        staff_repo=staff_repo,
        wards_repo=wards_repo,
        tasks_repo=tasks_repo,
        attendance_repo=attendance_repo,
        shops_repo=shops_repo,
        assessments_repo=assessments_repo,
        principals=principals,
        tokens=tokens,
        enforcer=enforcer,
        hierarchy=hierarchy,
        attendance=attendance,
        attendance_recorder=recorder,
        auth_service=AuthService(principals, staff_repo, users_repo, tokens, recorder),
        staff_service=StaffService(staff_repo, hierarchy),
        task_service=TaskService(tasks_repo, staff_repo, wards_repo, hierarchy),
        assessment_service=AssessmentService(assessments_repo, shops_repo),
    )


def build_container(
    *,
    db_config: dict,
    secret_key: str,
    jwt_algorithm: str = "HS256",
    token_ttl_hours: int = DEFAULT_TOKEN_TTL_HOURS,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return assemble(
        users_repo=MySQLUserRepository(conn),
        staff_repo=MySQLStaffRepository(conn),
        wards_repo=MySQLWardRepository(conn),
        tasks_repo=MySQLTaskRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        shops_repo=MySQLShopRepository(conn),
        assessments_repo=MySQLAssessmentRepository(conn),
        secret_key=secret_key,
        jwt_algorithm=jwt_algorithm,
        token_ttl_hours=token_ttl_hours,
        conn=conn,
    )
