from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from attendance_scheduling.attendance.model import PunchRequest
from attendance_scheduling.attendance_exceptions.model import (
    AttendanceAdjustments,
    ExceptionQuery,
    ExceptionReport,
    ResolutionInput,
)
from attendance_scheduling.core.enums import (
    AttendanceExceptionStatus,
    AttendanceExceptionType,
    AttendanceRecordStatus,
)
from attendance_scheduling.core.exceptions import AlreadyClockedIn, ExceptionNotFound

BUSINESS = "biz-1"


def _record(world, now, position: str = "pos-x"):
    return world.tracker.record_punch_in(
        PunchRequest(business_id=BUSINESS, employee_position_id=position), now=now
    )


def _report(world, now, record=None, position: str = "pos-x", kind=AttendanceExceptionType.LATE_ARRIVAL):
    return world.resolver.report(
        ExceptionReport(
            business_id=BUSINESS,
            employee_position_id=position,
            type=kind,
            attendance_record_id=record.id if record else None,
            policy_id=record.policy_id if record else None,
        ),
        now=now,
    )


def _resolve(world, exception_id: str, now, **kwargs):
    return world.resolver.resolve(
        ResolutionInput(
            business_id=BUSINESS,
            exception_id=exception_id,
            manager_user_id="manager-1",
            status=kwargs.pop("status", AttendanceExceptionStatus.RESOLVED),
            **kwargs,
        ),
        now=now,
    )


def test_resolving_last_open_exception_clears_flag(world, now):
    record = _record(world, now)
    exc = _report(world, now, record)
    assert world.records.rows[record.id].exception_flagged is True

    resolved = _resolve(world, exc.id, now + timedelta(hours=1), resolution_note="ok")

    assert resolved.status == AttendanceExceptionStatus.RESOLVED
    assert resolved.resolved_by_id == "manager-1"
    assert resolved.resolved_at == now + timedelta(hours=1)
    assert world.records.rows[record.id].exception_flagged is False


def test_flag_stays_while_another_exception_is_open(world, now):
    record = _record(world, now)
    first = _report(world, now, record)
    _report(world, now + timedelta(minutes=5), record, kind=AttendanceExceptionType.GEO_VIOLATION)

    _resolve(world, first.id, now + timedelta(hours=1))

    assert world.records.rows[record.id].exception_flagged is True


def test_under_review_still_counts_as_pending(world, now):
    record = _record(world, now)
    first = _report(world, now, record)
    second = _report(world, now, record)

    _resolve(world, first.id, now, status=AttendanceExceptionStatus.UNDER_REVIEW)
    _resolve(world, second.id, now, status=AttendanceExceptionStatus.DISMISSED)

    assert world.records.rows[record.id].exception_flagged is True


def test_unknown_exception(world, now):
    with pytest.raises(ExceptionNotFound):
        _resolve(world, "missing", now)


def test_manager_note_kept_when_not_supplied(world, now):
    exc = _report(world, now)
    _resolve(world, exc.id, now, status=AttendanceExceptionStatus.UNDER_REVIEW, manager_note="checking camera")

    resolved = _resolve(world, exc.id, now, resolution_payload={"approved": True})

    assert resolved.manager_note == "checking camera"
    assert resolved.resolution_payload == {"approved": True}


def test_adjustments_touch_only_supplied_fields(world, now):
    record = _record(world, now)
    world.records.rows[record.id] = replace(world.records.rows[record.id], variance_minutes=12)
    exc = _report(world, now, record)
    fixed_in = datetime(2026, 2, 2, 8, 55, 0)

    _resolve(
        world,
        exc.id,
        now,
        adjustments=AttendanceAdjustments(
            clock_in_time=fixed_in,
            clock_out_time=None,
            status=AttendanceRecordStatus.COMPLETED,
        ),
    )

    adjusted = world.records.rows[record.id]
    assert adjusted.clock_in_time == fixed_in
    assert adjusted.clock_out_time is None
    assert adjusted.status == AttendanceRecordStatus.COMPLETED
    assert adjusted.variance_minutes == 12
    assert adjusted.exception_flagged is False


def test_adjustments_ignored_without_linked_record(world, now):
    exc = _report(world, now)
    resolved = _resolve(world, exc.id, now, adjustments=AttendanceAdjustments(variance_minutes=3))
    assert resolved.status == AttendanceExceptionStatus.RESOLVED


def test_list_with_no_employee_ids_is_empty(world, now):
    _report(world, now)

    page = world.resolver.list_for_manager(
        ExceptionQuery(business_id=BUSINESS, employee_position_ids=[], page=0, page_size=500)
    )

    assert page.items == []
    assert page.total == 0
    assert page.page == 1
    assert page.page_size == 100


def test_list_filters_search_and_pages(world, now):
    for i in range(3):
        _report(world, now + timedelta(minutes=i), position="pos-x")
    _report(world, now, position="pos-y")

    page = world.resolver.list_for_manager(
        ExceptionQuery(
            business_id=BUSINESS,
            employee_position_ids=["pos-x", "pos-y"],
            search="  TRAN ",
            page=2,
            page_size=2,
        )
    )

    assert page.total == 3
    assert len(page.items) == 1
    assert page.items[0].exception.detected_at == now
    assert page.items[0].employee.name == "Tran Thi X"

    by_email = world.resolver.list_for_manager(
        ExceptionQuery(business_id=BUSINESS, employee_position_ids=["pos-x", "pos-y"], search="y@example")
    )
    assert by_email.total == 1


def test_list_filters_status_and_date_range(world, now):
    old = _report(world, now - timedelta(days=3))
    recent = _report(world, now)
    _resolve(world, old.id, now)

    pending = world.resolver.list_for_manager(
        ExceptionQuery(
            business_id=BUSINESS,
            employee_position_ids=["pos-x"],
            statuses=[AttendanceExceptionStatus.OPEN],
        )
    )
    assert [v.exception.id for v in pending.items] == [recent.id]

    window = world.resolver.list_for_manager(
        ExceptionQuery(
            business_id=BUSINESS,
            employee_position_ids=["pos-x"],
            start=now - timedelta(days=4),
            end=now - timedelta(days=3),
        )
    )
    assert [v.exception.id for v in window.items] == [old.id]


def test_overview_counts_pending_exceptions(world, now):
    record = _record(world, now)
    _report(world, now, record)
    assert world.tracker.get_overview(BUSINESS, now=now).open_exceptions == 1


def test_page_size_zero_is_clamped_to_one(world, now):
    for i in range(3):
        _report(world, now + timedelta(minutes=i))

    page = world.resolver.list_for_manager(
        ExceptionQuery(business_id=BUSINESS, employee_position_ids=["pos-x"], page_size=0)
    )

    assert page.page_size == 1
    assert page.total == 3
    assert len(page.items) == 1


def test_reopening_a_record_refused_while_another_is_open(world, now):
    first = _record(world, now)
    world.tracker.record_punch_out(
        PunchRequest(business_id=BUSINESS, employee_position_id="pos-x"), now=now + timedelta(hours=1)
    )
    exc = _report(world, now, first)
    second = _record(world, now + timedelta(hours=2))

    with pytest.raises(AlreadyClockedIn):
        _resolve(
            world,
            exc.id,
            now + timedelta(hours=3),
            adjustments=AttendanceAdjustments(status=AttendanceRecordStatus.IN_PROGRESS),
        )

    open_ids = [r.id for r in world.records.rows.values() if r.status == AttendanceRecordStatus.IN_PROGRESS]
    assert open_ids == [second.id]
    assert world.exceptions.rows[exc.id].status == AttendanceExceptionStatus.OPEN


def test_reopening_a_record_allowed_when_nothing_else_is_open(world, now):
    record = _record(world, now)
    world.tracker.record_punch_out(
        PunchRequest(business_id=BUSINESS, employee_position_id="pos-x"), now=now + timedelta(hours=1)
    )
    exc = _report(world, now, record)

    _resolve(
        world,
        exc.id,
        now + timedelta(hours=2),
        adjustments=AttendanceAdjustments(status=AttendanceRecordStatus.IN_PROGRESS),
    )

    assert world.records.rows[record.id].status == AttendanceRecordStatus.IN_PROGRESS
