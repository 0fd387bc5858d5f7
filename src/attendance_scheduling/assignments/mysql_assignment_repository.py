from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from ..core.enums import BLOCKING_ASSIGNMENT_STATUSES, ShiftAssignmentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone, from_json, in_clause, to_json
from ..employees.mysql_employee_repository import (
    EMPLOYEE_DISPLAY_COLUMNS,
    employee_display_joins,
    to_employee_display,
)
from ..shifts.mysql_shift_repository import template_select_list, to_shift_template
from .model import AssignmentFilters, AssignmentView, ShiftAssignment
from .repository import AssignmentRepository

_COLUMNS = (
    "id",
    "business_id",
    "shift_template_id",
    "employee_position_id",
    "effective_from",
    "effective_to",
    "status",
    "is_primary",
    "overrides",
    "created_at",
    "updated_at",
)

# Enum declaration order, so "status desc" lists ENDED, SUSPENDED, ACTIVE.
_STATUS_RANK = "FIELD(a.status, 'ACTIVE', 'SUSPENDED', 'ENDED')"


def _to_assignment(r: Dict[str, Any]) -> ShiftAssignment:
    return ShiftAssignment(
        id=r["id"],
        business_id=r["business_id"],
        shift_template_id=r["shift_template_id"],
        employee_position_id=r["employee_position_id"],
        effective_from=r["effective_from"],
        effective_to=r.get("effective_to"),
        status=ShiftAssignmentStatus(r["status"]),
        is_primary=as_bool(r.get("is_primary")),
        overrides=from_json(r.get("overrides")),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _to_view(r: Dict[str, Any]) -> AssignmentView:
    return AssignmentView(
        assignment=_to_assignment(r),
        template=to_shift_template(r, prefix="t_") if r.get("t_id") else None,
        policy_name=r.get("policy_name"),
        employee=to_employee_display(r),
    )


def _view_select() -> str:
    return f"""
        SELECT {", ".join("a." + c for c in _COLUMNS)},
               {template_select_list("t", "t_")},
               p.name AS policy_name,
               {EMPLOYEE_DISPLAY_COLUMNS}
        FROM attendance_shift_assignments a
        LEFT JOIN attendance_shift_templates t ON t.id = a.shift_template_id
        LEFT JOIN attendance_policies p ON p.id = t.policy_id
        {employee_display_joins("a.employee_position_id")}
    """


class MySQLAssignmentRepository(AssignmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, business_id: str, assignment_id: str) -> Optional[ShiftAssignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {", ".join(_COLUMNS)}
                FROM attendance_shift_assignments
                WHERE id=%s AND business_id=%s
                """,
                (assignment_id, business_id),
            )
            r = fetchone(cur)
            return _to_assignment(r) if r else None

    def list_blocking(
        self, *, business_id: str, employee_position_id: str, for_update: bool = False
    ) -> Sequence[ShiftAssignment]:
        statuses = [s.value for s in BLOCKING_ASSIGNMENT_STATUSES]
        lock = " FOR UPDATE" if for_update else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {", ".join(_COLUMNS)}
                FROM attendance_shift_assignments
                WHERE business_id=%s AND employee_position_id=%s AND status IN ({in_clause(statuses)})
                ORDER BY effective_from{lock}
                """,
                (business_id, employee_position_id, *statuses),
            )
            return [_to_assignment(r) for r in fetchall(cur)]

    def insert(self, assignment: ShiftAssignment) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_shift_assignments(
                    id, business_id, shift_template_id, employee_position_id, effective_from,
                    effective_to, status, is_primary, overrides, created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    assignment.id,
                    assignment.business_id,
                    assignment.shift_template_id,
                    assignment.employee_position_id,
                    assignment.effective_from,
                    assignment.effective_to,
                    assignment.status.value,
                    int(assignment.is_primary),
                    to_json(assignment.overrides),
                    assignment.created_at,
                    assignment.updated_at,
                ),
            )

    def update(self, assignment: ShiftAssignment) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_shift_assignments
                SET effective_to=%s, status=%s, is_primary=%s, overrides=%s, updated_at=%s
                WHERE id=%s AND business_id=%s
                """,
                (
                    assignment.effective_to,
                    assignment.status.value,
                    int(assignment.is_primary),
                    to_json(assignment.overrides),
                    assignment.updated_at,
                    assignment.id,
                    assignment.business_id,
                ),
            )
            return cur.rowcount > 0

    def list_views(self, filters: AssignmentFilters) -> Sequence[AssignmentView]:
        where: List[str] = ["a.business_id=%s"]
        params: List[Any] = [filters.business_id]
        if filters.employee_position_ids:
            where.append(f"a.employee_position_id IN ({in_clause(filters.employee_position_ids)})")
            params.extend(filters.employee_position_ids)
        if filters.statuses:
            where.append(f"a.status IN ({in_clause(filters.statuses)})")
            params.extend(ShiftAssignmentStatus(s).value for s in filters.statuses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _view_select()
                + f"""
                WHERE {" AND ".join(where)}
                ORDER BY {_STATUS_RANK} DESC, a.effective_from DESC
                """,
                tuple(params),
            )
            return [_to_view(r) for r in fetchall(cur)]

    def list_upcoming(
        self, *, business_id: str, employee_position_id: str, as_of: date, window_end: date
    ) -> Sequence[AssignmentView]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _view_select()
                + """
                WHERE a.business_id=%s AND a.employee_position_id=%s AND a.status=%s
                  AND a.effective_from <= %s
                  AND (a.effective_to IS NULL OR a.effective_to >= %s)
                ORDER BY a.effective_from ASC
                """,
                (
                    business_id,
                    employee_position_id,
                    ShiftAssignmentStatus.ACTIVE.value,
                    window_end,
                    as_of,
                ),
            )
            return [_to_view(r) for r in fetchall(cur)]
