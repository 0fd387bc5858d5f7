from __future__ import annotations

from typing import Any, Dict, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import EmployeeDisplay, EmployeePosition
from .repository import EmployeeDirectory


class MySQLEmployeeDirectory(EmployeeDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_active_position(
        self, *, business_id: str, employee_position_id: str, for_update: bool = False
    ) -> Optional[EmployeePosition]:
        sql = """
            SELECT id, business_id, user_id, active
            FROM employee_positions
            WHERE id=%s AND business_id=%s AND active=1
        """
        if for_update:
            sql += " FOR UPDATE"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, (employee_position_id, business_id))
            r = fetchone(cur)
            if not r:
                return None
            return EmployeePosition(
                id=r["id"],
                business_id=r["business_id"],
                user_id=r["user_id"],
                active=bool(r["active"]),
            )

    def count_active(self, *, business_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM employee_positions WHERE business_id=%s AND active=1",
                (business_id,),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0


# Shared by listings that decorate rows with the employee's display data.
# Expects the outer query to alias the employee position id column as ``employee_position_id``.
EMPLOYEE_DISPLAY_COLUMNS = "u.id AS emp_user_id, u.name AS emp_name, u.email AS emp_email, d.name AS emp_department_name"

EMPLOYEE_DISPLAY_JOINS = """
    LEFT JOIN employee_positions ep ON ep.id = {position_column}
    LEFT JOIN users u ON u.id = ep.user_id
    LEFT JOIN departments d ON d.id = ep.department_id
"""


def employee_display_joins(position_column: str) -> str:
    return EMPLOYEE_DISPLAY_JOINS.format(position_column=position_column)


def to_employee_display(r: Dict[str, Any]) -> Optional[EmployeeDisplay]:
    if r.get("emp_user_id") is None:
        return None
    return EmployeeDisplay(
        employee_position_id=r["employee_position_id"],
        user_id=r["emp_user_id"],
        name=r.get("emp_name"),
        email=r.get("emp_email") or "",
        department_name=r.get("emp_department_name"),
    )
