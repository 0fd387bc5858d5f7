from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .assignments.mysql_assignment_repository import MySQLAssignmentRepository
from .assignments.service import AssignmentScheduler
from .attendance.mysql_attendance_repository import MySQLAttendanceRecordRepository
from .attendance.service import AttendanceTracker
from .attendance_exceptions.mysql_exception_repository import MySQLAttendanceExceptionRepository
from .attendance_exceptions.service import ExceptionResolver
from .database.bootstrap import db_config_from_settings
from .database.connection import DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeDirectory
from .policies.mysql_policy_repository import MySQLPolicyRepository
from .policies.service import PolicyService
from .shifts.mysql_shift_repository import MySQLShiftTemplateRepository
from .shifts.service import ShiftCatalogService


@dataclass(frozen=True)
class Container:
    policy_service: PolicyService
    shift_catalog: ShiftCatalogService
    assignment_scheduler: AssignmentScheduler
    attendance_tracker: AttendanceTracker
    exception_resolver: ExceptionResolver

    # None when the services run over in-memory repositories.
    conn: Optional[DatabaseConnection] = None


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.get_instance(db_config_from_settings(db_config))
    atomic = conn.atomic

    employees_repo = MySQLEmployeeDirectory(conn)
    policies_repo = MySQLPolicyRepository(conn)
    templates_repo = MySQLShiftTemplateRepository(conn)
    assignments_repo = MySQLAssignmentRepository(conn)
    records_repo = MySQLAttendanceRecordRepository(conn)
    exceptions_repo = MySQLAttendanceExceptionRepository(conn)

    policy_service = PolicyService(policies_repo, atomic=atomic)
    return Container(
        conn=conn,
        policy_service=policy_service,
        shift_catalog=ShiftCatalogService(templates_repo, atomic=atomic),
        assignment_scheduler=AssignmentScheduler(assignments_repo, templates_repo, atomic=atomic),
        attendance_tracker=AttendanceTracker(
            records_repo,
            employees_repo,
            policy_service,
            exceptions_repo,
            atomic=atomic,
        ),
        exception_resolver=ExceptionResolver(exceptions_repo, records_repo, atomic=atomic),
    )
