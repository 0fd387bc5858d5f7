from __future__ import annotations

import logging
import math
from contextlib import nullcontext
from dataclasses import replace
from datetime import datetime
from typing import Callable, ContextManager, Optional, Sequence

from ..attendance_exceptions.repository import AttendanceExceptionRepository
from ..common.datetime_utils import day_bounds, utc_now, utc_work_date
from ..common.ids import new_id
from ..common.transaction import transactional
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceMethod, AttendanceRecordStatus
from ..core.exceptions import AlreadyClockedIn, ConflictError, NoOpenRecord, PositionNotFound, ValidationError
from ..employees.repository import EmployeeDirectory
from ..policies.service import PolicyService
from .model import AttendanceOverview, AttendanceRecord, PunchRequest
from .repository import AttendanceRecordRepository

logger = logging.getLogger(__name__)


def compute_duration_minutes(clock_in: Optional[datetime], clock_out: datetime) -> Optional[int]:
    """Whole minutes between the two punches, halves rounded up, never negative."""
    if clock_in is None:
        return None
    minutes = (clock_out - clock_in).total_seconds() / 60
    if minutes <= 0:
        return 0
    return int(math.floor(minutes + 0.5))


class AttendanceTracker:
    def __init__(
        self,
        records: AttendanceRecordRepository,
        employees: EmployeeDirectory,
        policy_service: PolicyService,
        exceptions: AttendanceExceptionRepository,
        *,
        atomic: Optional[Callable[[], ContextManager]] = None,
    ):
        self._records = records
        self._employees = employees
        self._policy_service = policy_service
        self._exceptions = exceptions
        self._atomic = atomic or nullcontext

    def record_punch_in(self, punch: PunchRequest, *, now: datetime | None = None) -> AttendanceRecord:
        record = self._open_record(punch, now or utc_now())
        logger.info(
            "Attendance punch-in recorded: business=%s position=%s record=%s method=%s",
            record.business_id,
            record.employee_position_id,
            record.id,
            record.clock_in_method.value,
        )
        return record

    @transactional
    def _open_record(self, punch: PunchRequest, now: datetime) -> AttendanceRecord:
        # Locking the position row serializes punches of the same employee.
        position = self._employees.get_active_position(
            business_id=punch.business_id,
            employee_position_id=punch.employee_position_id,
            for_update=True,
        )
        if not position:
            raise PositionNotFound("Active employee position not found for this business")

        open_record = self._records.find_open(
            business_id=punch.business_id,
            employee_position_id=punch.employee_position_id,
            for_update=True,
        )
        if open_record:
            raise AlreadyClockedIn("Employee already has an in-progress attendance record")

        policy = self._policy_service.ensure_default_policy(punch.business_id, now=now)
        record = AttendanceRecord(
            id=new_id(),
            business_id=punch.business_id,
            employee_position_id=punch.employee_position_id,
            policy_id=policy.id,
            work_date=utc_work_date(now),
            clock_in_time=now,
            clock_in_method=AttendanceMethod(punch.method),
            clock_in_source=punch.source,
            clock_in_location=punch.location,
            metadata=punch.metadata,
            status=AttendanceRecordStatus.IN_PROGRESS,
            created_at=now,
            updated_at=now,
        )
        try:
            self._records.insert(record)
        except ConflictError as exc:
            logger.warning(
                "Concurrent punch-in rejected: business=%s position=%s",
                punch.business_id,
                punch.employee_position_id,
            )
            raise AlreadyClockedIn(str(exc)) from exc
        return record

    def record_punch_out(
        self, punch: PunchRequest, *, record_id: str | None = None, now: datetime | None = None
    ) -> AttendanceRecord:
        updated = self._close_record(punch, record_id, now or utc_now())
        logger.info(
            "Attendance punch-out recorded: business=%s position=%s record=%s duration=%s",
            updated.business_id,
            updated.employee_position_id,
            updated.id,
            updated.duration_minutes,
        )
        return updated

    @transactional
    def _close_record(self, punch: PunchRequest, record_id: Optional[str], now: datetime) -> AttendanceRecord:
        record = self._records.find_open(
            business_id=punch.business_id,
            employee_position_id=punch.employee_position_id,
            record_id=record_id,
            for_update=True,
        )
        if not record:
            raise NoOpenRecord("No in-progress attendance record found to complete")

        updated = replace(
            record,
            clock_out_time=now,
            clock_out_method=AttendanceMethod(punch.method),
            clock_out_source=punch.source,
            clock_out_location=punch.location,
            metadata=punch.metadata if punch.metadata is not None else record.metadata,
            status=AttendanceRecordStatus.COMPLETED,
            duration_minutes=compute_duration_minutes(record.clock_in_time, now),
            updated_at=now,
        )
        self._records.save(updated)
        return updated

    def list_records(
        self, business_id: str, employee_position_id: str, *, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> Sequence[AttendanceRecord]:
        if int(limit) < 1:
            raise ValidationError("limit must be at least 1")
        return self._records.list_recent(
            business_id=business_id, employee_position_id=employee_position_id, limit=int(limit)
        )

    def get_overview(self, business_id: str, *, now: datetime | None = None) -> AttendanceOverview:
        now = now or utc_now()
        start, end = day_bounds(utc_work_date(now))
        return AttendanceOverview(
            active_employees=self._employees.count_active(business_id=business_id),
            todays_records=self._records.count_between(business_id=business_id, start=start, end=end),
            open_exceptions=self._exceptions.count_pending(business_id=business_id),
            in_progress_count=self._records.count_in_progress(business_id=business_id),
        )
