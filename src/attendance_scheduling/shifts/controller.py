from __future__ import annotations

from flask import Flask, request

from ..common.http import flag, json_body, ok, optional_int
from ..container import Container
from .model import ShiftTemplateInput


def _template_input(business_id: str, body: dict, template_id: str | None = None) -> ShiftTemplateInput:
    return ShiftTemplateInput(
        business_id=business_id,
        id=template_id,
        name=body.get("name") or "",
        start_minutes=optional_int(body.get("startMinutes"), "startMinutes"),
        end_minutes=optional_int(body.get("endMinutes"), "endMinutes"),
        days_of_week=body.get("daysOfWeek") or (),
        description=body.get("description"),
        timezone=body.get("timezone"),
        break_minutes=optional_int(body.get("breakMinutes"), "breakMinutes"),
        policy_id=body.get("policyId"),
        metadata=body.get("metadata"),
        is_active=flag(body.get("isActive", True)),
    )


def register(app: Flask, container: Container) -> None:
    base = "/api/businesses/<business_id>/attendance/shift-templates"

    @app.get(base, endpoint="list_shift_templates")
    def list_shift_templates(business_id: str):
        include_inactive = flag(request.args.get("includeInactive", "0"))
        return ok(container.shift_catalog.list_templates(business_id, include_inactive=include_inactive))

    @app.post(base, endpoint="create_shift_template")
    def create_shift_template(business_id: str):
        return ok(container.shift_catalog.upsert_template(_template_input(business_id, json_body())), 201)

    @app.put(base + "/<template_id>", endpoint="update_shift_template")
    def update_shift_template(business_id: str, template_id: str):
        return ok(container.shift_catalog.upsert_template(_template_input(business_id, json_body(), template_id)))

    @app.post(base + "/<template_id>/archive", endpoint="archive_shift_template")
    def archive_shift_template(business_id: str, template_id: str):
        return ok(container.shift_catalog.archive_template(business_id, template_id))
