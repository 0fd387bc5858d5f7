from __future__ import annotations

from typing import Optional, Protocol

from .model import EmployeePosition


class EmployeeDirectory(Protocol):
    """Lookup into the platform's employee positions.

    Note: owned by the platform; this module never writes to it.
    """

    def get_active_position(
        self, *, business_id: str, employee_position_id: str, for_update: bool = False
    ) -> Optional[EmployeePosition]:
        raise NotImplementedError

    def count_active(self, *, business_id: str) -> int:
        raise NotImplementedError
