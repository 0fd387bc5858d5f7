from __future__ import annotations

import logging
from contextlib import nullcontext
from dataclasses import replace
from datetime import datetime
from typing import Callable, ContextManager, Optional, Sequence

from ..common.datetime_utils import utc_now
from ..common.ids import new_id
from ..common.transaction import transactional
from ..common.validators import optional_text, require_int, require_non_empty, require_non_negative
from ..core.constants import MINUTES_PER_DAY
from ..core.enums import Weekday
from ..core.exceptions import ConflictError, InvalidWindow, TemplateNotFound, ValidationError
from .model import ShiftTemplate, ShiftTemplateInput
from .repository import ShiftTemplateRepository

logger = logging.getLogger(__name__)


def validate_window(start_minutes: int, end_minutes: int) -> None:
    """Check a daily window expressed in minutes since midnight."""
    if start_minutes is None or not 0 <= require_int(start_minutes, "startMinutes") <= MINUTES_PER_DAY:
        raise InvalidWindow(f"startMinutes must be between 0 and {MINUTES_PER_DAY}")
    if end_minutes is None or not 0 <= require_int(end_minutes, "endMinutes") <= MINUTES_PER_DAY:
        raise InvalidWindow(f"endMinutes must be between 0 and {MINUTES_PER_DAY}")
    if int(end_minutes) <= int(start_minutes):
        raise InvalidWindow("endMinutes must be greater than startMinutes")


def _parse_days(values) -> tuple[Weekday, ...]:
    if values is not None and not isinstance(values, (list, tuple)):
        raise ValidationError("days must be a list of weekday names")
    try:
        return tuple(Weekday(str(v).upper()) for v in (values or ()))
    except ValueError as exc:
        raise ValidationError(f"Unknown weekday in {list(values)!r}") from exc


class ShiftCatalogService:
    validate_window = staticmethod(validate_window)

    def __init__(self, templates: ShiftTemplateRepository, *, atomic: Optional[Callable[[], ContextManager]] = None):
        self._templates = templates
        self._atomic = atomic or nullcontext

    def get_template(self, business_id: str, template_id: str) -> Optional[ShiftTemplate]:
        return self._templates.get(business_id=business_id, template_id=template_id)

    def list_templates(self, business_id: str, *, include_inactive: bool = False) -> Sequence[ShiftTemplate]:
        return self._templates.list_for_business(business_id=business_id, include_inactive=include_inactive)

    def upsert_template(self, data: ShiftTemplateInput, *, now: datetime | None = None) -> ShiftTemplate:
        now = now or utc_now()
        name = require_non_empty(data.name, "name")
        validate_window(data.start_minutes, data.end_minutes)
        break_minutes = require_non_negative(data.break_minutes, "breakMinutes")
        days = _parse_days(data.days_of_week)
        data = replace(
            data,
            description=optional_text(data.description, "description"),
            timezone=optional_text(data.timezone, "timezone"),
        )
        return self._save_template(data, name, break_minutes, days, now)

    @transactional
    def _save_template(
        self, data: ShiftTemplateInput, name: str, break_minutes: Optional[int], days: tuple[Weekday, ...], now: datetime
    ) -> ShiftTemplate:
        created_at = now
        if data.id:
            existing = self._templates.get(business_id=data.business_id, template_id=data.id)
            if not existing:
                raise TemplateNotFound("Shift template not found")
            created_at = existing.created_at or now

        template = ShiftTemplate(
            id=data.id or new_id(),
            business_id=data.business_id,
            name=name,
            start_minutes=int(data.start_minutes),
            end_minutes=int(data.end_minutes),
            description=data.description,
            timezone=data.timezone,
            break_minutes=break_minutes,
            days_of_week=days,
            policy_id=data.policy_id,
            metadata=data.metadata,
            is_active=bool(data.is_active),
            created_at=created_at,
            updated_at=now,
        )
        try:
            if data.id:
                self._templates.update(template)
            else:
                self._templates.insert(template)
        except ConflictError as exc:
            logger.warning("Duplicate shift template name %r for business %s", name, data.business_id)
            raise ValidationError(str(exc)) from exc

        return template

    @transactional
    def archive_template(self, business_id: str, template_id: str, *, now: datetime | None = None) -> ShiftTemplate:
        """Mark a template archived. Existing assignments keep pointing at it."""
        now = now or utc_now()
        if not self._templates.set_active(business_id=business_id, template_id=template_id, is_active=False, now=now):
            raise TemplateNotFound("Shift template not found")
        template = self._templates.get(business_id=business_id, template_id=template_id)
        if not template:
            raise TemplateNotFound("Shift template not found")
        return template
