from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AssignmentFilters, AssignmentView, ShiftAssignment


class AssignmentRepository(Protocol):
    def get(self, *, business_id: str, assignment_id: str) -> Optional[ShiftAssignment]:
        raise NotImplementedError

    def list_blocking(
        self, *, business_id: str, employee_position_id: str, for_update: bool = False
    ) -> Sequence[ShiftAssignment]:
        """ACTIVE and SUSPENDED assignments of one employee position.

        With ``for_update`` the rows (and the gaps between them) stay locked
        until the surrounding transaction ends.
        """

        raise NotImplementedError

    def insert(self, assignment: ShiftAssignment) -> None:
        raise NotImplementedError

    def update(self, assignment: ShiftAssignment) -> bool:
        raise NotImplementedError

    def list_views(self, filters: AssignmentFilters) -> Sequence[AssignmentView]:
        """Joined listing ordered by status desc, effective_from desc. Templates are not filtered."""

        raise NotImplementedError

    def list_upcoming(
        self, *, business_id: str, employee_position_id: str, as_of: date, window_end: date
    ) -> Sequence[AssignmentView]:
        raise NotImplementedError
