from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..common.sentinel import UNSET
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.enums import AttendanceExceptionStatus, AttendanceExceptionType
from ..employees.model import EmployeeDisplay


@dataclass(frozen=True)
class AttendanceException:
    """Thực thể miền (domain): Ngoại lệ chấm công chờ quản lý xử lý."""

    id: str
    business_id: str
    employee_position_id: str
    type: AttendanceExceptionType
    detected_at: datetime
    status: AttendanceExceptionStatus = AttendanceExceptionStatus.OPEN
    attendance_record_id: Optional[str] = None
    policy_id: Optional[str] = None
    detected_by_id: Optional[str] = None
    detected_source: Optional[str] = None
    details: Any = None
    manager_note: Optional[str] = None
    resolution_note: Optional[str] = None
    resolved_by_id: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution_payload: Any = None
    metadata: Any = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def pending(self) -> bool:
        return self.status in (AttendanceExceptionStatus.OPEN, AttendanceExceptionStatus.UNDER_REVIEW)


@dataclass(frozen=True)
class ExceptionReport:
    """A newly detected exception, optionally tied to an attendance record."""

    business_id: str
    employee_position_id: str
    type: AttendanceExceptionType
    attendance_record_id: Optional[str] = None
    policy_id: Optional[str] = None
    detected_by_id: Optional[str] = None
    detected_source: Optional[str] = None
    details: Any = None
    metadata: Any = None


@dataclass(frozen=True)
class ExceptionQuery:
    business_id: str
    employee_position_ids: Sequence[str]
    statuses: Optional[Sequence[AttendanceExceptionStatus]] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    search: Optional[str] = None
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class ExceptionView:
    exception: AttendanceException
    employee: Optional[EmployeeDisplay] = None
    record: Optional[AttendanceRecord] = None
    policy_name: Optional[str] = None


@dataclass(frozen=True)
class ExceptionPage:
    items: Sequence[ExceptionView] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class AttendanceAdjustments:
    """Corrections applied to the linked record. UNSET means "leave as is"; None clears."""

    clock_in_time: Any = UNSET
    clock_out_time: Any = UNSET
    status: Any = UNSET
    variance_minutes: Any = UNSET


@dataclass(frozen=True)
class ResolutionInput:
    business_id: str
    exception_id: str
    manager_user_id: str
    status: AttendanceExceptionStatus
    resolution_note: Optional[str] = None
    manager_note: Optional[str] = None
    resolution_payload: Any = None
    adjustments: Optional[AttendanceAdjustments] = None
