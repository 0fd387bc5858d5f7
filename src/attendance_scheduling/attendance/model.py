from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from ..core.enums import AttendanceMethod, AttendanceRecordStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Thực thể miền (domain): Bản ghi chấm công (một lần vào/ra ca)."""

    id: str
    business_id: str
    employee_position_id: str
    work_date: date
    status: AttendanceRecordStatus = AttendanceRecordStatus.IN_PROGRESS
    shift_assignment_id: Optional[str] = None
    policy_id: Optional[str] = None
    clock_in_time: Optional[datetime] = None
    clock_in_method: Optional[AttendanceMethod] = None
    clock_in_location: Any = None
    clock_in_source: Optional[str] = None
    clock_out_time: Optional[datetime] = None
    clock_out_method: Optional[AttendanceMethod] = None
    clock_out_location: Any = None
    clock_out_source: Optional[str] = None
    duration_minutes: Optional[int] = None
    variance_minutes: Optional[int] = None
    metadata: Any = None
    exception_flagged: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class PunchRequest:
    """One punch (in or out). ``location`` and ``metadata`` are passed through as-is."""

    business_id: str
    employee_position_id: str
    method: AttendanceMethod = AttendanceMethod.WEB
    source: Optional[str] = None
    location: Any = None
    metadata: Any = None


@dataclass(frozen=True)
class AttendanceOverview:
    active_employees: int
    todays_records: int
    open_exceptions: int
    in_progress_count: int
