from __future__ import annotations

from enum import Enum


class Weekday(str, Enum):
    """Ngày trong tuần dùng cho chính sách và mẫu ca."""

    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"


WORKWEEK = (Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY)


class Lifecycle(str, Enum):
    """Two-state archive tag. Rows are never deleted, only archived."""

    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class AttendanceMethod(str, Enum):
    WEB = "WEB"
    MOBILE = "MOBILE"
    ADMIN = "ADMIN"
    AUTO = "AUTO"
    HARDWARE = "HARDWARE"


class AttendanceRecordStatus(str, Enum):
    """Trạng thái bản ghi chấm công lưu trong CSDL."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    MISSED = "MISSED"
    VOID = "VOID"


class ShiftAssignmentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    ENDED = "ENDED"


# Statuses that occupy the employee's calendar for overlap checks.
BLOCKING_ASSIGNMENT_STATUSES = (ShiftAssignmentStatus.ACTIVE, ShiftAssignmentStatus.SUSPENDED)


class AttendanceExceptionType(str, Enum):
    MISSED_PUNCH = "MISSED_PUNCH"
    LATE_ARRIVAL = "LATE_ARRIVAL"
    EARLY_DEPARTURE = "EARLY_DEPARTURE"
    ABSENCE = "ABSENCE"
    GEO_VIOLATION = "GEO_VIOLATION"
    POLICY_OVERRIDE = "POLICY_OVERRIDE"
    OTHER = "OTHER"


class AttendanceExceptionStatus(str, Enum):
    """Trạng thái luồng xử lý ngoại lệ chấm công."""

    OPEN = "OPEN"
    UNDER_REVIEW = "UNDER_REVIEW"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"


PENDING_EXCEPTION_STATUSES = (AttendanceExceptionStatus.OPEN, AttendanceExceptionStatus.UNDER_REVIEW)
