from __future__ import annotations

from flask import Flask, request

from ..common.http import json_body, ok, optional_int
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceMethod
from ..core.exceptions import ValidationError
from .model import PunchRequest


def _punch(business_id: str, employee_position_id: str, body: dict) -> PunchRequest:
    try:
        method = AttendanceMethod(str(body.get("method") or AttendanceMethod.WEB.value).upper())
    except ValueError as exc:
        raise ValidationError(f"Unknown punch method {body.get('method')!r}") from exc
    return PunchRequest(
        business_id=business_id,
        employee_position_id=employee_position_id,
        method=method,
        source=body.get("source"),
        location=body.get("location"),
        metadata=body.get("metadata"),
    )


def register(app: Flask, container: Container) -> None:
    base = "/api/businesses/<business_id>/attendance"

    @app.post(base + "/employees/<employee_position_id>/punch-in", endpoint="punch_in")
    def punch_in(business_id: str, employee_position_id: str):
        record = container.attendance_tracker.record_punch_in(_punch(business_id, employee_position_id, json_body()))
        return ok(record, 201)

    @app.post(base + "/employees/<employee_position_id>/punch-out", endpoint="punch_out")
    def punch_out(business_id: str, employee_position_id: str):
        body = json_body()
        record = container.attendance_tracker.record_punch_out(
            _punch(business_id, employee_position_id, body),
            record_id=body.get("recordId"),
        )
        return ok(record)

    @app.get(base + "/employees/<employee_position_id>/records", endpoint="attendance_records")
    def attendance_records(business_id: str, employee_position_id: str):
        limit = optional_int(request.args.get("limit"), "limit")
        return ok(
            container.attendance_tracker.list_records(
                business_id,
                employee_position_id,
                limit=DEFAULT_HISTORY_LIMIT if limit is None else limit,
            )
        )

    @app.get(base + "/overview", endpoint="attendance_overview")
    def attendance_overview(business_id: str):
        return ok(container.attendance_tracker.get_overview(business_id))
