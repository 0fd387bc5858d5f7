from __future__ import annotations

import logging
from contextlib import nullcontext
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, ContextManager, Optional, Sequence

from ..common.datetime_utils import add_days, to_date, utc_now
from ..common.ids import new_id
from ..common.sentinel import is_set
from ..common.transaction import transactional
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_UPCOMING_WINDOW_DAYS
from ..core.enums import BLOCKING_ASSIGNMENT_STATUSES, ShiftAssignmentStatus
from ..core.exceptions import (
    AssignmentNotFound,
    OverlappingAssignment,
    TemplateUnavailable,
    ValidationError,
)
from ..shifts.repository import ShiftTemplateRepository
from .model import AssignmentFilters, AssignmentInput, AssignmentUpdate, AssignmentView, ShiftAssignment
from .repository import AssignmentRepository

logger = logging.getLogger(__name__)


def assignments_overlap(existing: ShiftAssignment, incoming: ShiftAssignment) -> bool:
    """Inclusive date-range overlap; a missing end date is open-ended.

    Two ranges are disjoint only when one ends strictly before the other starts.
    """

    if existing.effective_to is not None and existing.effective_to < incoming.effective_from:
        return False
    if incoming.effective_to is not None and incoming.effective_to < existing.effective_from:
        return False
    return True


def _check_range(effective_from: date, effective_to: Optional[date]) -> None:
    if effective_to is not None and effective_to < effective_from:
        raise ValidationError("effectiveTo must not be before effectiveFrom")


class AssignmentScheduler:
    def __init__(
        self,
        assignments: AssignmentRepository,
        templates: ShiftTemplateRepository,
        *,
        atomic: Optional[Callable[[], ContextManager]] = None,
    ):
        self._assignments = assignments
        self._templates = templates
        self._atomic = atomic or nullcontext

    def _ensure_no_overlap(self, candidate: ShiftAssignment) -> None:
        # Locking read: concurrent assigns for the same position serialize here.
        existing = self._assignments.list_blocking(
            business_id=candidate.business_id,
            employee_position_id=candidate.employee_position_id,
            for_update=True,
        )
        for other in existing:
            if other.id != candidate.id and assignments_overlap(other, candidate):
                raise OverlappingAssignment("Employee already has an overlapping shift assignment")

    def assign(self, data: AssignmentInput, *, now: datetime | None = None) -> ShiftAssignment:
        """Assign a shift template to an employee position for a date range."""
        require_non_empty(data.shift_template_id, "shiftTemplateId")
        require_non_empty(data.employee_position_id, "employeePositionId")
        now = now or utc_now()
        effective_from = to_date(data.effective_from)
        effective_to = to_date(data.effective_to)
        if effective_from is None:
            raise ValidationError("effectiveFrom is required")
        _check_range(effective_from, effective_to)

        assignment = self._insert_assignment(data, effective_from, effective_to, now)

        logger.info(
            "Shift assigned: business=%s position=%s template=%s from=%s to=%s",
            assignment.business_id,
            assignment.employee_position_id,
            assignment.shift_template_id,
            assignment.effective_from,
            assignment.effective_to,
        )
        return assignment

    @transactional
    def _insert_assignment(
        self, data: AssignmentInput, effective_from: date, effective_to: Optional[date], now: datetime
    ) -> ShiftAssignment:
        template = self._templates.get(business_id=data.business_id, template_id=data.shift_template_id)
        if not template or not template.is_active:
            raise TemplateUnavailable("Shift template not found or inactive")

        assignment = ShiftAssignment(
            id=new_id(),
            business_id=data.business_id,
            shift_template_id=template.id,
            employee_position_id=data.employee_position_id,
            effective_from=effective_from,
            effective_to=effective_to,
            status=ShiftAssignmentStatus(data.status) if data.status else ShiftAssignmentStatus.ACTIVE,
            is_primary=True if data.is_primary is None else bool(data.is_primary),
            overrides=data.overrides,
            created_at=now,
            updated_at=now,
        )
        self._ensure_no_overlap(assignment)
        self._assignments.insert(assignment)
        return assignment

    def update(self, patch: AssignmentUpdate, *, now: datetime | None = None) -> ShiftAssignment:
        changes = {}
        if is_set(patch.status) and patch.status:
            changes["status"] = ShiftAssignmentStatus(patch.status)
        if is_set(patch.effective_to):
            changes["effective_to"] = to_date(patch.effective_to)
        if is_set(patch.overrides):
            changes["overrides"] = patch.overrides
        if is_set(patch.is_primary):
            changes["is_primary"] = bool(patch.is_primary)

        if not changes:
            current = self._assignments.get(business_id=patch.business_id, assignment_id=patch.assignment_id)
            if not current:
                raise AssignmentNotFound("Shift assignment not found")
            return current

        return self._apply_update(patch, changes, now or utc_now())

    @transactional
    def _apply_update(self, patch: AssignmentUpdate, changes: dict, now: datetime) -> ShiftAssignment:
        current = self._assignments.get(business_id=patch.business_id, assignment_id=patch.assignment_id)
        if not current:
            raise AssignmentNotFound("Shift assignment not found")

        updated = replace(current, updated_at=now, **changes)
        _check_range(updated.effective_from, updated.effective_to)
        widened = "effective_to" in changes or (
            "status" in changes and current.status not in BLOCKING_ASSIGNMENT_STATUSES
        )
        if updated.status in BLOCKING_ASSIGNMENT_STATUSES and widened:
            self._ensure_no_overlap(updated)
        self._assignments.update(updated)
        return updated

    def list_assignments(self, filters: AssignmentFilters) -> Sequence[AssignmentView]:
        views = self._assignments.list_views(filters)
        if filters.include_inactive_templates:
            return list(views)
        # O(n) pass over the joined rows.
        return [v for v in views if v.template is None or v.template.is_active]

    def upcoming_shifts(
        self,
        business_id: str,
        employee_position_id: str,
        *,
        as_of: date | datetime | None = None,
        window_days: int = DEFAULT_UPCOMING_WINDOW_DAYS,
    ) -> Sequence[AssignmentView]:
        as_of_day = to_date(as_of) or utc_now().date()
        return self._assignments.list_upcoming(
            business_id=business_id,
            employee_position_id=employee_position_id,
            as_of=as_of_day,
            window_end=add_days(as_of_day, window_days),
        )
