from __future__ import annotations

import logging
from contextlib import nullcontext
from dataclasses import replace
from datetime import datetime
from typing import Callable, ContextManager, Optional, Sequence

from ..common.datetime_utils import utc_now
from ..common.ids import new_id
from ..common.transaction import transactional
from ..common.validators import optional_text, require_non_empty, require_non_negative
from ..core.constants import (
    FALLBACK_GRACE_MINUTES,
    FALLBACK_POLICY_DESCRIPTION,
    FALLBACK_POLICY_NAME,
    FALLBACK_POLICY_TIMEZONE,
)
from ..core.enums import WORKWEEK, Weekday
from ..core.exceptions import ConflictError, PolicyNotFound, ValidationError
from .model import AttendancePolicy, PolicyInput
from .repository import PolicyRepository

logger = logging.getLogger(__name__)


def _parse_weekdays(values) -> tuple[Weekday, ...]:
    if values is not None and not isinstance(values, (list, tuple)):
        raise ValidationError("days must be a list of weekday names")
    try:
        return tuple(Weekday(str(v).upper()) for v in (values or ()))
    except ValueError as exc:
        raise ValidationError(f"Unknown weekday in {list(values)!r}") from exc


class PolicyService:
    """Use case: manage attendance policies and resolve the business default."""

    def __init__(self, policies: PolicyRepository, *, atomic: Optional[Callable[[], ContextManager]] = None):
        self._policies = policies
        self._atomic = atomic or nullcontext

    def list_policies(self, business_id: str, *, include_inactive: bool = False) -> Sequence[AttendancePolicy]:
        return self._policies.list_for_business(business_id=business_id, include_inactive=include_inactive)

    def upsert_policy(self, data: PolicyInput, *, now: datetime | None = None) -> AttendancePolicy:
        """Create or update a policy.

        When the result is the default, every other default of the business is
        demoted first, in the same transaction, so the one-default rule holds
        at every point.
        """

        now = now or utc_now()
        name = require_non_empty(data.name, "name")
        working_days = _parse_weekdays(data.working_days)
        counts = {
            field_name: require_non_negative(getattr(data, field_name), field_name)
            for field_name in (
                "rounding_increment_minutes",
                "grace_period_minutes",
                "auto_clock_out_after_minutes",
                "geofence_radius_meters",
            )
        }
        data = replace(
            data,
            description=optional_text(data.description, "description"),
            timezone=optional_text(data.timezone, "timezone"),
            **counts,
        )
        if data.effective_from and data.effective_to and data.effective_to < data.effective_from:
            raise ValidationError("effectiveTo must not be before effectiveFrom")
        return self._save_policy(data, name, working_days, now)

    @transactional
    def _save_policy(
        self, data: PolicyInput, name: str, working_days: tuple[Weekday, ...], now: datetime
    ) -> AttendancePolicy:
        created_at = now
        if data.id:
            existing = self._policies.get(business_id=data.business_id, policy_id=data.id)
            if not existing:
                raise PolicyNotFound("Attendance policy not found")
            created_at = existing.created_at or now

        policy = AttendancePolicy(
            id=data.id or new_id(),
            business_id=data.business_id,
            name=name,
            description=data.description,
            timezone=data.timezone,
            rounding_increment_minutes=data.rounding_increment_minutes,
            grace_period_minutes=data.grace_period_minutes,
            auto_clock_out_after_minutes=data.auto_clock_out_after_minutes,
            require_geolocation=bool(data.require_geolocation),
            geofence_radius_meters=data.geofence_radius_meters,
            working_days=working_days,
            metadata=data.metadata,
            is_default=bool(data.is_default),
            effective_from=data.effective_from,
            effective_to=data.effective_to,
            active=bool(data.active),
            created_at=created_at,
            updated_at=now,
        )

        if policy.is_default:
            demoted = self._policies.demote_defaults(business_id=policy.business_id, except_id=policy.id, now=now)
            if demoted:
                logger.info("Demoted %s default attendance policies for business %s", demoted, policy.business_id)

        if data.id:
            self._policies.update(policy)
        else:
            self._policies.insert(policy)

        return policy

    @transactional
    def ensure_default_policy(self, business_id: str, *, now: datetime | None = None) -> AttendancePolicy:
        """Return the policy a punch should attach to; never None.

        Preference: the active default, then the oldest active policy, then a
        newly created fallback (which becomes the default).
        """

        existing = self._policies.find_active_default(business_id=business_id)
        if existing:
            return existing

        oldest = self._policies.find_oldest_active(business_id=business_id)
        if oldest:
            return oldest

        now = now or utc_now()
        logger.info("Creating default attendance policy for business %s", business_id)
        policy = AttendancePolicy(
            id=new_id(),
            business_id=business_id,
            name=FALLBACK_POLICY_NAME,
            description=FALLBACK_POLICY_DESCRIPTION,
            timezone=FALLBACK_POLICY_TIMEZONE,
            grace_period_minutes=FALLBACK_GRACE_MINUTES,
            working_days=WORKWEEK,
            is_default=True,
            created_at=now,
            updated_at=now,
        )
        try:
            self._policies.insert(policy)
        except ConflictError:
            # Another transaction committed a default first.
            winner = self._policies.find_active_default(business_id=business_id)
            if winner is None:
                raise
            return winner
        return policy

    @transactional
    def deactivate_policy(self, business_id: str, policy_id: str, *, now: datetime | None = None) -> AttendancePolicy:
        now = now or utc_now()
        if not self._policies.set_active(business_id=business_id, policy_id=policy_id, active=False, now=now):
            raise PolicyNotFound("Attendance policy not found")
        policy = self._policies.get(business_id=business_id, policy_id=policy_id)
        if not policy:
            raise PolicyNotFound("Attendance policy not found")
        return policy
