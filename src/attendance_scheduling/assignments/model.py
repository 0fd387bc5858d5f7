from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..common.sentinel import UNSET
from ..core.enums import ShiftAssignmentStatus
from ..employees.model import EmployeeDisplay
from ..shifts.model import ShiftTemplate


@dataclass(frozen=True)
class ShiftAssignment:
    """Thực thể miền (domain): Phân ca cho một vị trí nhân viên trong một khoảng ngày.

    ``effective_to`` None means open-ended.
    """

    id: str
    business_id: str
    shift_template_id: str
    employee_position_id: str
    effective_from: date
    effective_to: Optional[date] = None
    status: ShiftAssignmentStatus = ShiftAssignmentStatus.ACTIVE
    is_primary: bool = True
    overrides: Any = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class AssignmentInput:
    business_id: str
    shift_template_id: str
    employee_position_id: str
    effective_from: date
    effective_to: Optional[date] = None
    status: Optional[ShiftAssignmentStatus] = None
    is_primary: Optional[bool] = None
    overrides: Any = None


@dataclass(frozen=True)
class AssignmentUpdate:
    """Partial patch. Fields left as UNSET are not touched."""

    business_id: str
    assignment_id: str
    status: Any = UNSET
    effective_to: Any = UNSET
    overrides: Any = UNSET
    is_primary: Any = UNSET


@dataclass(frozen=True)
class AssignmentFilters:
    business_id: str
    employee_position_ids: Optional[Sequence[str]] = None
    statuses: Optional[Sequence[ShiftAssignmentStatus]] = None
    include_inactive_templates: bool = False


@dataclass(frozen=True)
class AssignmentView:
    """Assignment joined with its template, the template's policy name and the employee."""

    assignment: ShiftAssignment
    template: Optional[ShiftTemplate]
    policy_name: Optional[str] = None
    employee: Optional[EmployeeDisplay] = None
