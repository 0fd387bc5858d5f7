from __future__ import annotations

from flask import Flask, request

from ..common.http import body_value, flag, json_body, ok, optional_date, optional_int
from ..common.sentinel import is_set
from ..container import Container
from ..core.constants import DEFAULT_UPCOMING_WINDOW_DAYS
from ..core.enums import ShiftAssignmentStatus
from ..core.exceptions import ValidationError
from .model import AssignmentFilters, AssignmentInput, AssignmentUpdate


def _status(value) -> ShiftAssignmentStatus | None:
    if not value:
        return None
    try:
        return ShiftAssignmentStatus(str(value).upper())
    except ValueError as exc:
        raise ValidationError(f"Unknown assignment status {value!r}") from exc


def register(app: Flask, container: Container) -> None:
    base = "/api/businesses/<business_id>/attendance"

    @app.get(base + "/shift-assignments", endpoint="list_shift_assignments")
    def list_shift_assignments(business_id: str):
        filters = AssignmentFilters(
            business_id=business_id,
            employee_position_ids=request.args.getlist("employeePositionId") or None,
            statuses=[_status(s) for s in request.args.getlist("status")] or None,
            include_inactive_templates=flag(request.args.get("includeInactiveTemplates", "0")),
        )
        return ok(container.assignment_scheduler.list_assignments(filters))

    @app.post(base + "/shift-assignments", endpoint="create_shift_assignment")
    def create_shift_assignment(business_id: str):
        body = json_body()
        data = AssignmentInput(
            business_id=business_id,
            shift_template_id=body.get("shiftTemplateId") or "",
            employee_position_id=body.get("employeePositionId") or "",
            effective_from=optional_date(body.get("effectiveFrom"), "effectiveFrom"),
            effective_to=optional_date(body.get("effectiveTo"), "effectiveTo"),
            status=_status(body.get("status")),
            is_primary=flag(body["isPrimary"]) if "isPrimary" in body else None,
            overrides=body.get("overrides"),
        )
        return ok(container.assignment_scheduler.assign(data), 201)

    @app.patch(base + "/shift-assignments/<assignment_id>", endpoint="update_shift_assignment")
    def update_shift_assignment(business_id: str, assignment_id: str):
        body = json_body()
        status = body_value(body, "status")
        effective_to = body_value(body, "effectiveTo")
        is_primary = body_value(body, "isPrimary")
        patch = AssignmentUpdate(
            business_id=business_id,
            assignment_id=assignment_id,
            status=_status(status) if is_set(status) else status,
            effective_to=optional_date(effective_to, "effectiveTo") if is_set(effective_to) else effective_to,
            overrides=body_value(body, "overrides"),
            is_primary=flag(is_primary) if is_set(is_primary) else is_primary,
        )
        return ok(container.assignment_scheduler.update(patch))

    @app.get(base + "/employees/<employee_position_id>/upcoming-shifts", endpoint="upcoming_shifts")
    def upcoming_shifts(business_id: str, employee_position_id: str):
        window_days = optional_int(request.args.get("windowDays"), "windowDays")
        return ok(
            container.assignment_scheduler.upcoming_shifts(
                business_id,
                employee_position_id,
                as_of=optional_date(request.args.get("asOf"), "asOf"),
                window_days=DEFAULT_UPCOMING_WINDOW_DAYS if window_days is None else window_days,
            )
        )
