from __future__ import annotations

from flask import Flask, request

from ..common.http import flag, json_body, ok, optional_date, optional_int
from ..container import Container
from .model import PolicyInput

_MINUTE_FIELDS = {
    "rounding_increment_minutes": "roundingIncrementMinutes",
    "grace_period_minutes": "gracePeriodMinutes",
    "auto_clock_out_after_minutes": "autoClockOutAfterMinutes",
    "geofence_radius_meters": "geofenceRadiusMeters",
}


def _policy_input(business_id: str, body: dict, policy_id: str | None = None) -> PolicyInput:
    return PolicyInput(
        business_id=business_id,
        id=policy_id,
        name=body.get("name") or "",
        description=body.get("description"),
        timezone=body.get("timezone"),
        require_geolocation=flag(body.get("requireGeolocation", False)),
        working_days=body.get("workingDays") or (),
        metadata=body.get("metadata"),
        is_default=flag(body.get("isDefault", False)),
        effective_from=optional_date(body.get("effectiveFrom"), "effectiveFrom"),
        effective_to=optional_date(body.get("effectiveTo"), "effectiveTo"),
        active=flag(body.get("active", True)),
        **{attr: optional_int(body.get(key), key) for attr, key in _MINUTE_FIELDS.items()},
    )


def register(app: Flask, container: Container) -> None:
    base = "/api/businesses/<business_id>/attendance/policies"

    @app.get(base, endpoint="list_policies")
    def list_policies(business_id: str):
        include_inactive = flag(request.args.get("includeInactive", "0"))
        return ok(container.policy_service.list_policies(business_id, include_inactive=include_inactive))

    @app.post(base, endpoint="create_policy")
    def create_policy(business_id: str):
        policy = container.policy_service.upsert_policy(_policy_input(business_id, json_body()))
        return ok(policy, 201)

    @app.put(base + "/<policy_id>", endpoint="update_policy")
    def update_policy(business_id: str, policy_id: str):
        return ok(container.policy_service.upsert_policy(_policy_input(business_id, json_body(), policy_id)))

    @app.get(base + "/default", endpoint="default_policy")
    def default_policy(business_id: str):
        return ok(container.policy_service.ensure_default_policy(business_id))

    @app.post(base + "/<policy_id>/deactivate", endpoint="deactivate_policy")
    def deactivate_policy(business_id: str, policy_id: str):
        return ok(container.policy_service.deactivate_policy(business_id, policy_id))
