from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..attendance.mysql_attendance_repository import record_select_list, to_attendance_record
from ..core.enums import PENDING_EXCEPTION_STATUSES, AttendanceExceptionStatus, AttendanceExceptionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, escape_like, fetchall, fetchone, from_json, in_clause, to_json
from ..employees.mysql_employee_repository import (
    EMPLOYEE_DISPLAY_COLUMNS,
    employee_display_joins,
    to_employee_display,
)
from .model import AttendanceException, ExceptionQuery, ExceptionView
from .repository import AttendanceExceptionRepository

_COLUMNS = (
    "id",
    "business_id",
    "attendance_record_id",
    "employee_position_id",
    "policy_id",
    "type",
    "status",
    "detected_at",
    "detected_by_id",
    "detected_source",
    "details",
    "manager_note",
    "resolution_note",
    "resolved_by_id",
    "resolved_at",
    "resolution_payload",
    "metadata",
    "created_at",
    "updated_at",
)

_PENDING = [s.value for s in PENDING_EXCEPTION_STATUSES]


def _to_exception(r: Dict[str, Any]) -> AttendanceException:
    return AttendanceException(
        id=r["id"],
        business_id=r["business_id"],
        employee_position_id=r["employee_position_id"],
        type=AttendanceExceptionType(r["type"]),
        detected_at=r["detected_at"],
        status=AttendanceExceptionStatus(r["status"]),
        attendance_record_id=r.get("attendance_record_id"),
        policy_id=r.get("policy_id"),
        detected_by_id=r.get("detected_by_id"),
        detected_source=r.get("detected_source"),
        details=from_json(r.get("details")),
        manager_note=r.get("manager_note"),
        resolution_note=r.get("resolution_note"),
        resolved_by_id=r.get("resolved_by_id"),
        resolved_at=r.get("resolved_at"),
        resolution_payload=from_json(r.get("resolution_payload")),
        metadata=from_json(r.get("metadata")),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _where(query: ExceptionQuery) -> Tuple[str, List[Any]]:
    """Filter shared by the count and the page query. Needs the employee joins."""
    clauses = ["e.business_id=%s", f"e.employee_position_id IN ({in_clause(query.employee_position_ids)})"]
    params: List[Any] = [query.business_id, *query.employee_position_ids]
    if query.statuses:
        clauses.append(f"e.status IN ({in_clause(query.statuses)})")
        params.extend(AttendanceExceptionStatus(s).value for s in query.statuses)
    if query.start:
        clauses.append("e.detected_at >= %s")
        params.append(query.start)
    if query.end:
        clauses.append("e.detected_at <= %s")
        params.append(query.end)
    term = (query.search or "").strip()
    if term:
        pattern = f"%{escape_like(term.lower())}%"
        clauses.append("(LOWER(u.name) LIKE %s OR LOWER(u.email) LIKE %s)")
        params.extend([pattern, pattern])
    return " AND ".join(clauses), params


class MySQLAttendanceExceptionRepository(AttendanceExceptionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, business_id: str, exception_id: str, for_update: bool = False) -> Optional[AttendanceException]:
        lock = " FOR UPDATE" if for_update else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {', '.join(_COLUMNS)} FROM attendance_exceptions WHERE id=%s AND business_id=%s{lock}",
                (exception_id, business_id),
            )
            r = fetchone(cur)
            return _to_exception(r) if r else None

    def insert(self, exception: AttendanceException) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO attendance_exceptions({', '.join(_COLUMNS)})
                VALUES({', '.join(['%s'] * len(_COLUMNS))})
                """,
                (
                    exception.id,
                    exception.business_id,
                    exception.attendance_record_id,
                    exception.employee_position_id,
                    exception.policy_id,
                    exception.type.value,
                    exception.status.value,
                    exception.detected_at,
                    exception.detected_by_id,
                    exception.detected_source,
                    to_json(exception.details),
                    exception.manager_note,
                    exception.resolution_note,
                    exception.resolved_by_id,
                    exception.resolved_at,
                    to_json(exception.resolution_payload),
                    to_json(exception.metadata),
                    exception.created_at,
                    exception.updated_at,
                ),
            )

    def save_resolution(self, exception: AttendanceException) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_exceptions
                SET status=%s, resolved_by_id=%s, resolved_at=%s, resolution_note=%s,
                    manager_note=%s, resolution_payload=%s, updated_at=%s
                WHERE id=%s AND business_id=%s
                """,
                (
                    exception.status.value,
                    exception.resolved_by_id,
                    exception.resolved_at,
                    exception.resolution_note,
                    exception.manager_note,
                    to_json(exception.resolution_payload),
                    exception.updated_at,
                    exception.id,
                    exception.business_id,
                ),
            )
            return cur.rowcount > 0

    def count_pending_for_record(self, *, record_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS n FROM attendance_exceptions
                WHERE attendance_record_id=%s AND status IN ({in_clause(_PENDING)})
                """,
                (record_id, *_PENDING),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def count_pending(self, *, business_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS n FROM attendance_exceptions
                WHERE business_id=%s AND status IN ({in_clause(_PENDING)})
                """,
                (business_id, *_PENDING),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def count_matching(self, query: ExceptionQuery) -> int:
        where, params = _where(query)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS n
                FROM attendance_exceptions e
                {employee_display_joins("e.employee_position_id")}
                WHERE {where}
                """,
                tuple(params),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def list_page(self, query: ExceptionQuery, *, offset: int, limit: int) -> Sequence[ExceptionView]:
        where, params = _where(query)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {', '.join('e.' + c for c in _COLUMNS)},
                       {record_select_list("r", "r_")},
                       p.name AS policy_name,
                       {EMPLOYEE_DISPLAY_COLUMNS}
                FROM attendance_exceptions e
                LEFT JOIN attendance_records r ON r.id = e.attendance_record_id
                LEFT JOIN attendance_policies p ON p.id = e.policy_id
                {employee_display_joins("e.employee_position_id")}
                WHERE {where}
                ORDER BY e.detected_at DESC
                LIMIT %s OFFSET %s
                """,
                (*params, int(limit), int(offset)),
            )
            return [
                ExceptionView(
                    exception=_to_exception(r),
                    employee=to_employee_display(r),
                    record=to_attendance_record(r, prefix="r_") if r.get("r_id") else None,
                    policy_name=r.get("policy_name"),
                )
                for r in fetchall(cur)
            ]
