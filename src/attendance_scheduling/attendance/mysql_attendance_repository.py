from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import AttendanceMethod, AttendanceRecordStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    as_bool,
    db_cursor,
    fetchall,
    fetchone,
    from_json,
    optional_int,
    to_json,
    unique_violation_as_conflict,
)
from .model import AttendanceRecord
from .repository import AttendanceRecordRepository

RECORD_COLUMNS = (
    "id",
    "business_id",
    "employee_position_id",
    "shift_assignment_id",
    "policy_id",
    "work_date",
    "clock_in_time",
    "clock_in_method",
    "clock_in_location",
    "clock_in_source",
    "clock_out_time",
    "clock_out_method",
    "clock_out_location",
    "clock_out_source",
    "status",
    "duration_minutes",
    "variance_minutes",
    "metadata",
    "exception_flagged",
    "created_at",
    "updated_at",
)


def _method(value: Any) -> Optional[AttendanceMethod]:
    return AttendanceMethod(value) if value else None


def to_attendance_record(r: Dict[str, Any], *, prefix: str = "") -> AttendanceRecord:
    def col(name: str):
        return r.get(prefix + name)

    return AttendanceRecord(
        id=col("id"),
        business_id=col("business_id"),
        employee_position_id=col("employee_position_id"),
        work_date=col("work_date"),
        status=AttendanceRecordStatus(col("status")),
        shift_assignment_id=col("shift_assignment_id"),
        policy_id=col("policy_id"),
        clock_in_time=col("clock_in_time"),
        clock_in_method=_method(col("clock_in_method")),
        clock_in_location=from_json(col("clock_in_location")),
        clock_in_source=col("clock_in_source"),
        clock_out_time=col("clock_out_time"),
        clock_out_method=_method(col("clock_out_method")),
        clock_out_location=from_json(col("clock_out_location")),
        clock_out_source=col("clock_out_source"),
        duration_minutes=optional_int(col("duration_minutes")),
        variance_minutes=optional_int(col("variance_minutes")),
        metadata=from_json(col("metadata")),
        exception_flagged=as_bool(col("exception_flagged")),
        created_at=col("created_at"),
        updated_at=col("updated_at"),
    )


def record_select_list(alias: str, prefix: str) -> str:
    return ", ".join(f"{alias}.{c} AS {prefix}{c}" for c in RECORD_COLUMNS)


def _params(rec: AttendanceRecord) -> Dict[str, Any]:
    return {
        "id": rec.id,
        "business_id": rec.business_id,
        "employee_position_id": rec.employee_position_id,
        "shift_assignment_id": rec.shift_assignment_id,
        "policy_id": rec.policy_id,
        "work_date": rec.work_date,
        "clock_in_time": rec.clock_in_time,
        "clock_in_method": rec.clock_in_method.value if rec.clock_in_method else None,
        "clock_in_location": to_json(rec.clock_in_location),
        "clock_in_source": rec.clock_in_source,
        "clock_out_time": rec.clock_out_time,
        "clock_out_method": rec.clock_out_method.value if rec.clock_out_method else None,
        "clock_out_location": to_json(rec.clock_out_location),
        "clock_out_source": rec.clock_out_source,
        "status": rec.status.value,
        "duration_minutes": rec.duration_minutes,
        "variance_minutes": rec.variance_minutes,
        "metadata": to_json(rec.metadata),
        "exception_flagged": int(rec.exception_flagged),
        "created_at": rec.created_at,
        "updated_at": rec.updated_at,
    }


class MySQLAttendanceRecordRepository(AttendanceRecordRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, business_id: str, record_id: str) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {', '.join(RECORD_COLUMNS)} FROM attendance_records WHERE id=%s AND business_id=%s",
                (record_id, business_id),
            )
            r = fetchone(cur)
            return to_attendance_record(r) if r else None

    def find_open(
        self,
        *,
        business_id: str,
        employee_position_id: str,
        record_id: Optional[str] = None,
        for_update: bool = False,
    ) -> Optional[AttendanceRecord]:
        sql = f"""
            SELECT {', '.join(RECORD_COLUMNS)}
            FROM attendance_records
            WHERE business_id=%s AND employee_position_id=%s AND status=%s
        """
        params: list[Any] = [business_id, employee_position_id, AttendanceRecordStatus.IN_PROGRESS.value]
        if record_id:
            sql += " AND id=%s"
            params.append(record_id)
        sql += " ORDER BY created_at DESC LIMIT 1"
        if for_update:
            sql += " FOR UPDATE"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            r = fetchone(cur)
            return to_attendance_record(r) if r else None

    def insert(self, record: AttendanceRecord) -> None:
        placeholders = ", ".join(f"%({c})s" for c in RECORD_COLUMNS)
        with unique_violation_as_conflict("Employee already has an in-progress attendance record"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"INSERT INTO attendance_records({', '.join(RECORD_COLUMNS)}) VALUES({placeholders})",
                    _params(record),
                )

    def save(self, record: AttendanceRecord) -> bool:
        assignments = ", ".join(
            f"{c}=%({c})s" for c in RECORD_COLUMNS if c not in ("id", "business_id", "created_at")
        )
        with unique_violation_as_conflict("Employee already has an in-progress attendance record"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"UPDATE attendance_records SET {assignments} WHERE id=%(id)s AND business_id=%(business_id)s",
                    _params(record),
                )
                return cur.rowcount > 0

    def set_exception_flagged(self, *, record_id: str, flagged: bool, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_records SET exception_flagged=%s, updated_at=%s WHERE id=%s",
                (int(flagged), now, record_id),
            )
            return cur.rowcount > 0

    def list_recent(self, *, business_id: str, employee_position_id: str, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {', '.join(RECORD_COLUMNS)}
                FROM attendance_records
                WHERE business_id=%s AND employee_position_id=%s
                ORDER BY work_date DESC, created_at DESC
                LIMIT %s
                """,
                (business_id, employee_position_id, int(limit)),
            )
            return [to_attendance_record(r) for r in fetchall(cur)]

    def count_between(self, *, business_id: str, start: datetime, end: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM attendance_records WHERE business_id=%s AND work_date >= %s AND work_date < %s",
                (business_id, start, end),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def count_in_progress(self, *, business_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM attendance_records WHERE business_id=%s AND status=%s",
                (business_id, AttendanceRecordStatus.IN_PROGRESS.value),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0
