from __future__ import annotations

from flask import Flask, request

from ..common.http import body_value, json_body, ok, optional_datetime, optional_int
from ..common.sentinel import UNSET, is_set
from ..container import Container
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.enums import AttendanceExceptionStatus, AttendanceExceptionType, AttendanceRecordStatus
from ..core.exceptions import ValidationError
from .model import AttendanceAdjustments, ExceptionQuery, ExceptionReport, ResolutionInput


def _enum(enum_cls, value, field_name: str):
    try:
        return enum_cls(str(value).upper())
    except ValueError as exc:
        raise ValidationError(f"{field_name} has unknown value {value!r}") from exc


def _adjustments(body: dict) -> AttendanceAdjustments | None:
    raw = body.get("attendanceAdjustments")
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValidationError("attendanceAdjustments must be an object")

    clock_in = body_value(raw, "clockInTime")
    clock_out = body_value(raw, "clockOutTime")
    status = body_value(raw, "status")
    variance = body_value(raw, "varianceMinutes")
    return AttendanceAdjustments(
        clock_in_time=optional_datetime(clock_in, "clockInTime") if is_set(clock_in) else UNSET,
        clock_out_time=optional_datetime(clock_out, "clockOutTime") if is_set(clock_out) else UNSET,
        status=_enum(AttendanceRecordStatus, status, "status") if is_set(status) and status else UNSET,
        variance_minutes=optional_int(variance, "varianceMinutes") if is_set(variance) else UNSET,
    )


def register(app: Flask, container: Container) -> None:
    base = "/api/businesses/<business_id>/attendance/exceptions"

    @app.get(base, endpoint="list_attendance_exceptions")
    def list_attendance_exceptions(business_id: str):
        args = request.args
        page = optional_int(args.get("page"), "page")
        page_size = optional_int(args.get("pageSize"), "pageSize")
        query = ExceptionQuery(
            business_id=business_id,
            employee_position_ids=args.getlist("employeePositionId"),
            statuses=[_enum(AttendanceExceptionStatus, s, "status") for s in args.getlist("status")] or None,
            start=optional_datetime(args.get("startDate"), "startDate"),
            end=optional_datetime(args.get("endDate"), "endDate"),
            search=args.get("search"),
            page=1 if page is None else page,
            page_size=DEFAULT_PAGE_SIZE if page_size is None else page_size,
        )
        return ok(container.exception_resolver.list_for_manager(query))

    @app.post(base, endpoint="report_attendance_exception")
    def report_attendance_exception(business_id: str):
        body = json_body()
        report = ExceptionReport(
            business_id=business_id,
            employee_position_id=body.get("employeePositionId") or "",
            type=_enum(AttendanceExceptionType, body.get("type") or "OTHER", "type"),
            attendance_record_id=body.get("attendanceRecordId"),
            policy_id=body.get("policyId"),
            detected_by_id=body.get("detectedById"),
            detected_source=body.get("detectedSource"),
            details=body.get("details"),
            metadata=body.get("metadata"),
        )
        return ok(container.exception_resolver.report(report), 201)

    @app.post(base + "/<exception_id>/resolve", endpoint="resolve_attendance_exception")
    def resolve_attendance_exception(business_id: str, exception_id: str):
        body = json_body()
        if not body.get("managerUserId"):
            raise ValidationError("managerUserId is required")
        data = ResolutionInput(
            business_id=business_id,
            exception_id=exception_id,
            manager_user_id=body["managerUserId"],
            status=_enum(AttendanceExceptionStatus, body.get("status") or "RESOLVED", "status"),
            resolution_note=body.get("resolutionNote"),
            manager_note=body.get("managerNote"),
            resolution_payload=body.get("resolutionPayload"),
            adjustments=_adjustments(body),
        )
        return ok(container.exception_resolver.resolve(data))
