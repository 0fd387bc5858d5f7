from __future__ import annotations

import logging
from contextlib import nullcontext
from dataclasses import replace
from datetime import datetime
from typing import Callable, ContextManager, Optional

from ..attendance.repository import AttendanceRecordRepository
from ..common.datetime_utils import utc_now
from ..common.ids import new_id
from ..common.sentinel import is_set
from ..common.transaction import transactional
from ..common.validators import clamp, require_non_empty
from ..core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..core.enums import AttendanceExceptionStatus, AttendanceExceptionType, AttendanceRecordStatus
from ..core.exceptions import AlreadyClockedIn, ConflictError, ExceptionNotFound, NotFoundError
from .model import (
    AttendanceAdjustments,
    AttendanceException,
    ExceptionPage,
    ExceptionQuery,
    ExceptionReport,
    ResolutionInput,
)
from .repository import AttendanceExceptionRepository

logger = logging.getLogger(__name__)


def _adjusted_fields(adjustments: Optional[AttendanceAdjustments]) -> dict:
    if adjustments is None:
        return {}
    changes = {}
    if is_set(adjustments.clock_in_time):
        changes["clock_in_time"] = adjustments.clock_in_time
    if is_set(adjustments.clock_out_time):
        changes["clock_out_time"] = adjustments.clock_out_time
    if is_set(adjustments.status) and adjustments.status:
        changes["status"] = AttendanceRecordStatus(adjustments.status)
    if is_set(adjustments.variance_minutes):
        changes["variance_minutes"] = adjustments.variance_minutes
    return changes


class ExceptionResolver:
    """Manager workflow over attendance exceptions.

    Mirrors the request approval flow: list what is pending for the manager's
    employees, then resolve one exception at a time. Resolving keeps the
    linked record's ``exception_flagged`` in line with what is still pending.
    """

    def __init__(
        self,
        exceptions: AttendanceExceptionRepository,
        records: AttendanceRecordRepository,
        *,
        atomic: Optional[Callable[[], ContextManager]] = None,
    ):
        self._exceptions = exceptions
        self._records = records
        self._atomic = atomic or nullcontext

    def list_for_manager(self, query: ExceptionQuery) -> ExceptionPage:
        page = max(1, 1 if query.page is None else int(query.page))
        page_size = clamp(DEFAULT_PAGE_SIZE if query.page_size is None else query.page_size, 1, MAX_PAGE_SIZE)

        if not query.employee_position_ids:
            return ExceptionPage(items=[], total=0, page=page, page_size=page_size)

        total = self._exceptions.count_matching(query)
        items = self._exceptions.list_page(query, offset=(page - 1) * page_size, limit=page_size)
        return ExceptionPage(items=list(items), total=total, page=page, page_size=page_size)

    def report(self, data: ExceptionReport, *, now: datetime | None = None) -> AttendanceException:
        """Open a new exception and flag its record, if any."""
        require_non_empty(data.employee_position_id, "employeePositionId")
        now = now or utc_now()
        exception = AttendanceException(
            id=new_id(),
            business_id=data.business_id,
            employee_position_id=data.employee_position_id,
            type=AttendanceExceptionType(data.type),
            detected_at=now,
            attendance_record_id=data.attendance_record_id,
            policy_id=data.policy_id,
            detected_by_id=data.detected_by_id,
            detected_source=data.detected_source,
            details=data.details,
            metadata=data.metadata,
            created_at=now,
            updated_at=now,
        )
        self._store_report(exception, now)

        logger.info(
            "Attendance exception reported: business=%s exception=%s type=%s",
            exception.business_id,
            exception.id,
            exception.type.value,
        )
        return exception

    @transactional
    def _store_report(self, exception: AttendanceException, now: datetime) -> None:
        if exception.attendance_record_id:
            record = self._records.get(business_id=exception.business_id, record_id=exception.attendance_record_id)
            if not record:
                raise NotFoundError("Attendance record not found")
        self._exceptions.insert(exception)
        if exception.attendance_record_id:
            self._records.set_exception_flagged(record_id=exception.attendance_record_id, flagged=True, now=now)

    def resolve(self, data: ResolutionInput, *, now: datetime | None = None) -> AttendanceException:
        updated = self._apply_resolution(data, now or utc_now())
        logger.info(
            "Attendance exception resolved: business=%s exception=%s status=%s by=%s",
            updated.business_id,
            updated.id,
            updated.status.value,
            updated.resolved_by_id,
        )
        return updated

    def _adjusted_record(self, business_id: str, record_id: str, changes: dict, now: datetime):
        record = self._records.get(business_id=business_id, record_id=record_id)
        if not record:
            return None
        adjusted = replace(record, updated_at=now, **changes)
        if adjusted.status == AttendanceRecordStatus.IN_PROGRESS:
            # Reopening must not give the employee a second open record.
            open_record = self._records.find_open(
                business_id=business_id,
                employee_position_id=adjusted.employee_position_id,
                for_update=True,
            )
            if open_record and open_record.id != adjusted.id:
                raise AlreadyClockedIn("Employee already has an in-progress attendance record")
        return adjusted

    @transactional
    def _apply_resolution(self, data: ResolutionInput, now: datetime) -> AttendanceException:
        exception = self._exceptions.get(business_id=data.business_id, exception_id=data.exception_id, for_update=True)
        if not exception:
            raise ExceptionNotFound("Attendance exception not found")

        record_id = exception.attendance_record_id
        changes = _adjusted_fields(data.adjustments) if record_id else {}
        adjusted = self._adjusted_record(data.business_id, record_id, changes, now) if changes else None

        updated = replace(
            exception,
            status=AttendanceExceptionStatus(data.status),
            resolved_by_id=data.manager_user_id,
            resolved_at=now,
            resolution_note=data.resolution_note,
            manager_note=data.manager_note if data.manager_note is not None else exception.manager_note,
            resolution_payload=data.resolution_payload,
            updated_at=now,
        )
        self._exceptions.save_resolution(updated)

        if adjusted is not None:
            try:
                self._records.save(adjusted)
            except ConflictError as exc:
                raise AlreadyClockedIn(str(exc)) from exc

        if record_id:
            pending = self._exceptions.count_pending_for_record(record_id=record_id)
            self._records.set_exception_flagged(record_id=record_id, flagged=pending > 0, now=now)
        return updated
