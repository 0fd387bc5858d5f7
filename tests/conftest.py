from __future__ import annotations

from contextlib import contextmanager, nullcontext
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Optional

import pytest

from attendance_scheduling.assignments.model import AssignmentView
from attendance_scheduling.assignments.service import AssignmentScheduler
from attendance_scheduling.attendance.service import AttendanceTracker
from attendance_scheduling.attendance_exceptions.model import ExceptionView
from attendance_scheduling.attendance_exceptions.service import ExceptionResolver
from attendance_scheduling.container import Container
from attendance_scheduling.core.enums import (
    BLOCKING_ASSIGNMENT_STATUSES,
    AttendanceRecordStatus,
    ShiftAssignmentStatus,
)
from attendance_scheduling.core.exceptions import ConflictError, TransactionConflict
from attendance_scheduling.employees.model import EmployeeDisplay, EmployeePosition
from attendance_scheduling.policies.service import PolicyService
from attendance_scheduling.shifts.service import ShiftCatalogService

BUSINESS = "biz-1"


class FakeEmployees:
    def __init__(self):
        self.locked_reads = 0
        self.positions: Dict[str, EmployeePosition] = {}
        self.displays: Dict[str, EmployeeDisplay] = {}

    def add(self, position_id: str, *, name: str = "Nguyen Van A", email: str = "a@example.com", active: bool = True):
        self.positions[position_id] = EmployeePosition(
            id=position_id, business_id=BUSINESS, user_id=f"user-{position_id}", active=active
        )
        self.displays[position_id] = EmployeeDisplay(
            employee_position_id=position_id, user_id=f"user-{position_id}", name=name, email=email
        )

    def get_active_position(self, *, business_id, employee_position_id, for_update=False):
        self.locked_reads += int(for_update)
        p = self.positions.get(employee_position_id)
        if p and p.business_id == business_id and p.active:
            return p
        return None

    def count_active(self, *, business_id):
        return sum(1 for p in self.positions.values() if p.business_id == business_id and p.active)


class InMemoryPolicies:
    def __init__(self):
        self.rows: Dict[str, object] = {}

    def get(self, *, business_id, policy_id):
        p = self.rows.get(policy_id)
        return p if p and p.business_id == business_id else None

    def list_for_business(self, *, business_id, include_inactive=False):
        rows = [p for p in self.rows.values() if p.business_id == business_id and (include_inactive or p.active)]
        rows.sort(key=lambda p: p.created_at, reverse=True)
        rows.sort(key=lambda p: p.is_default, reverse=True)
        return rows

    def find_active_default(self, *, business_id):
        return next(
            (p for p in self.rows.values() if p.business_id == business_id and p.active and p.is_default),
            None,
        )

    def find_oldest_active(self, *, business_id):
        active = [p for p in self.rows.values() if p.business_id == business_id and p.active]
        return min(active, key=lambda p: p.created_at) if active else None

    def insert(self, policy):
        self._check_default(policy)
        self.rows[policy.id] = policy

    def update(self, policy):
        if policy.id not in self.rows:
            return False
        self._check_default(policy)
        self.rows[policy.id] = policy
        return True

    def _check_default(self, policy):
        if policy.is_default and policy.active:
            for other in self.rows.values():
                if other.id != policy.id and other.business_id == policy.business_id and other.is_default and other.active:
                    raise ConflictError("Duplicate default policy")

    def demote_defaults(self, *, business_id, except_id, now):
        changed = 0
        for pid, p in list(self.rows.items()):
            if p.business_id == business_id and p.id != except_id and p.is_default:
                self.rows[pid] = replace(p, is_default=False, updated_at=now)
                changed += 1
        return changed

    def set_active(self, *, business_id, policy_id, active, now):
        p = self.get(business_id=business_id, policy_id=policy_id)
        if not p:
            return False
        self.rows[policy_id] = replace(p, active=active, updated_at=now)
        return True


class InMemoryTemplates:
    def __init__(self):
        self.rows: Dict[str, object] = {}

    def get(self, *, business_id, template_id):
        t = self.rows.get(template_id)
        return t if t and t.business_id == business_id else None

    def list_for_business(self, *, business_id, include_inactive=False):
        rows = [t for t in self.rows.values() if t.business_id == business_id and (include_inactive or t.is_active)]
        rows.sort(key=lambda t: t.created_at, reverse=True)
        rows.sort(key=lambda t: t.is_active, reverse=True)
        return rows

    def _check_name(self, template):
        for other in self.rows.values():
            if other.id != template.id and other.business_id == template.business_id and other.name == template.name:
                raise ConflictError(f"A shift template named {template.name!r} already exists")

    def insert(self, template):
        self._check_name(template)
        self.rows[template.id] = template

    def update(self, template):
        if template.id not in self.rows:
            return False
        self._check_name(template)
        self.rows[template.id] = template
        return True

    def set_active(self, *, business_id, template_id, is_active, now):
        t = self.get(business_id=business_id, template_id=template_id)
        if not t:
            return False
        self.rows[template_id] = replace(t, is_active=is_active, updated_at=now)
        return True


_STATUS_RANK = {ShiftAssignmentStatus.ACTIVE: 1, ShiftAssignmentStatus.SUSPENDED: 2, ShiftAssignmentStatus.ENDED: 3}


class InMemoryAssignments:
    def __init__(self, templates: InMemoryTemplates, policies: InMemoryPolicies, employees: FakeEmployees):
        self.rows: Dict[str, object] = {}
        self._templates = templates
        self._policies = policies
        self._employees = employees
        self.locked_reads = 0

    def get(self, *, business_id, assignment_id):
        a = self.rows.get(assignment_id)
        return a if a and a.business_id == business_id else None

    def list_blocking(self, *, business_id, employee_position_id, for_update=False):
        if for_update:
            self.locked_reads += 1
        return [
            a
            for a in self.rows.values()
            if a.business_id == business_id
            and a.employee_position_id == employee_position_id
            and a.status in BLOCKING_ASSIGNMENT_STATUSES
        ]

    def insert(self, assignment):
        self.rows[assignment.id] = assignment

    def update(self, assignment):
        if assignment.id not in self.rows:
            return False
        self.rows[assignment.id] = assignment
        return True

    def _view(self, a):
        template = self._templates.rows.get(a.shift_template_id)
        policy = self._policies.rows.get(template.policy_id) if template and template.policy_id else None
        return AssignmentView(
            assignment=a,
            template=template,
            policy_name=policy.name if policy else None,
            employee=self._employees.displays.get(a.employee_position_id),
        )

    def list_views(self, filters):
        rows = [a for a in self.rows.values() if a.business_id == filters.business_id]
        if filters.employee_position_ids:
            rows = [a for a in rows if a.employee_position_id in filters.employee_position_ids]
        if filters.statuses:
            rows = [a for a in rows if a.status in filters.statuses]
        rows.sort(key=lambda a: a.effective_from, reverse=True)
        rows.sort(key=lambda a: _STATUS_RANK[a.status], reverse=True)
        return [self._view(a) for a in rows]

    def list_upcoming(self, *, business_id, employee_position_id, as_of, window_end):
        rows = [
            a
            for a in self.rows.values()
            if a.business_id == business_id
            and a.employee_position_id == employee_position_id
            and a.status == ShiftAssignmentStatus.ACTIVE
            and a.effective_from <= window_end
            and (a.effective_to is None or a.effective_to >= as_of)
        ]
        rows.sort(key=lambda a: a.effective_from)
        return [self._view(a) for a in rows]


class InMemoryRecords:
    def __init__(self):
        self.rows: Dict[str, object] = {}

    def get(self, *, business_id, record_id):
        r = self.rows.get(record_id)
        return r if r and r.business_id == business_id else None

    def find_open(self, *, business_id, employee_position_id, record_id=None, for_update=False):
        rows = [
            r
            for r in self.rows.values()
            if r.business_id == business_id
            and r.employee_position_id == employee_position_id
            and r.status == AttendanceRecordStatus.IN_PROGRESS
            and (record_id is None or r.id == record_id)
        ]
        return max(rows, key=lambda r: r.created_at) if rows else None

    def _check_open_slot(self, record):
        # Same rule as the unique open-slot index.
        if record.status == AttendanceRecordStatus.IN_PROGRESS and any(
            r.id != record.id
            and r.business_id == record.business_id
            and r.employee_position_id == record.employee_position_id
            and r.status == AttendanceRecordStatus.IN_PROGRESS
            for r in self.rows.values()
        ):
            raise ConflictError("Employee already has an in-progress attendance record")

    def insert(self, record):
        self._check_open_slot(record)
        self.rows[record.id] = record

    def save(self, record):
        if record.id not in self.rows:
            return False
        self._check_open_slot(record)
        self.rows[record.id] = record
        return True

    def set_exception_flagged(self, *, record_id, flagged, now):
        r = self.rows.get(record_id)
        if not r:
            return False
        self.rows[record_id] = replace(r, exception_flagged=flagged, updated_at=now)
        return True

    def list_recent(self, *, business_id, employee_position_id, limit):
        rows = [r for r in self.rows.values() if r.business_id == business_id and r.employee_position_id == employee_position_id]
        rows.sort(key=lambda r: (r.work_date, r.created_at), reverse=True)
        return rows[:limit]

    def count_between(self, *, business_id, start, end):
        return sum(
            1 for r in self.rows.values() if r.business_id == business_id and start.date() <= r.work_date < end.date()
        )

    def count_in_progress(self, *, business_id):
        return sum(
            1
            for r in self.rows.values()
            if r.business_id == business_id and r.status == AttendanceRecordStatus.IN_PROGRESS
        )


class InMemoryExceptions:
    def __init__(self, records: InMemoryRecords, employees: FakeEmployees, policies: InMemoryPolicies):
        self.rows: Dict[str, object] = {}
        self._records = records
        self._employees = employees
        self._policies = policies

    def get(self, *, business_id, exception_id, for_update=False):
        e = self.rows.get(exception_id)
        return e if e and e.business_id == business_id else None

    def insert(self, exception):
        self.rows[exception.id] = exception

    def save_resolution(self, exception):
        if exception.id not in self.rows:
            return False
        self.rows[exception.id] = exception
        return True

    def count_pending_for_record(self, *, record_id):
        return sum(1 for e in self.rows.values() if e.attendance_record_id == record_id and e.pending)

    def count_pending(self, *, business_id):
        return sum(1 for e in self.rows.values() if e.business_id == business_id and e.pending)

    def _matching(self, query):
        rows = [
            e
            for e in self.rows.values()
            if e.business_id == query.business_id and e.employee_position_id in query.employee_position_ids
        ]
        if query.statuses:
            rows = [e for e in rows if e.status in query.statuses]
        if query.start:
            rows = [e for e in rows if e.detected_at >= query.start]
        if query.end:
            rows = [e for e in rows if e.detected_at <= query.end]
        term = (query.search or "").strip().lower()
        if term:
            def hit(e):
                d = self._employees.displays.get(e.employee_position_id)
                return bool(d) and (term in (d.name or "").lower() or term in d.email.lower())

            rows = [e for e in rows if hit(e)]
        rows.sort(key=lambda e: e.detected_at, reverse=True)
        return rows

    def count_matching(self, query):
        return len(self._matching(query))

    def list_page(self, query, *, offset, limit):
        out = []
        for e in self._matching(query)[offset : offset + limit]:
            policy = self._policies.rows.get(e.policy_id) if e.policy_id else None
            out.append(
                ExceptionView(
                    exception=e,
                    employee=self._employees.displays.get(e.employee_position_id),
                    record=self._records.rows.get(e.attendance_record_id) if e.attendance_record_id else None,
                    policy_name=policy.name if policy else None,
                )
            )
        return out


class RecordingAtomic:
    """Counts transaction scopes opened by a service."""

    def __init__(self):
        self.opened = 0

    def __call__(self):
        self.opened += 1
        return nullcontext()


class DeadlockOnce:
    """Transaction scope whose first outermost run is rolled back as a deadlock victim.

    Writes made to ``store.rows`` during that run are discarded, then
    ``winner`` runs, standing in for the transaction that won the lock.
    """

    def __init__(self, store, winner=None):
        self._store = store
        self._winner = winner
        self._depth = 0
        self.opened = 0
        self.aborted = False

    def __call__(self):
        return self._scope()

    @contextmanager
    def _scope(self):
        self.opened += 1
        outermost = self._depth == 0
        snapshot = dict(self._store.rows) if outermost else None
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
        if outermost and not self.aborted:
            self.aborted = True
            self._store.rows = snapshot
            if self._winner is not None:
                self._winner()
            raise TransactionConflict("Deadlock found when trying to get lock")


@dataclass
class World:
    employees: FakeEmployees = field(default_factory=FakeEmployees)
    policies: InMemoryPolicies = field(default_factory=InMemoryPolicies)
    templates: InMemoryTemplates = field(default_factory=InMemoryTemplates)
    records: InMemoryRecords = field(default_factory=InMemoryRecords)
    atomic: RecordingAtomic = field(default_factory=RecordingAtomic)
    assignments: Optional[InMemoryAssignments] = None
    exceptions: Optional[InMemoryExceptions] = None

    def __post_init__(self):
        self.assignments = InMemoryAssignments(self.templates, self.policies, self.employees)
        self.exceptions = InMemoryExceptions(self.records, self.employees, self.policies)
        self.policy_service = PolicyService(self.policies, atomic=self.atomic)
        self.shift_catalog = ShiftCatalogService(self.templates, atomic=self.atomic)
        self.scheduler = AssignmentScheduler(self.assignments, self.templates, atomic=self.atomic)
        self.tracker = AttendanceTracker(
            self.records, self.employees, self.policy_service, self.exceptions, atomic=self.atomic
        )
        self.resolver = ExceptionResolver(self.exceptions, self.records, atomic=self.atomic)

    def container(self) -> Container:
        return Container(
            policy_service=self.policy_service,
            shift_catalog=self.shift_catalog,
            assignment_scheduler=self.scheduler,
            attendance_tracker=self.tracker,
            exception_resolver=self.resolver,
        )


@pytest.fixture
def world() -> World:
    w = World()
    w.employees.add("pos-x", name="Tran Thi X", email="x@example.com")
    w.employees.add("pos-y", name="Le Van Y", email="y@example.com")
    return w


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 2, 2, 9, 0, 0)


@pytest.fixture
def deadlock_once():
    return DeadlockOnce
