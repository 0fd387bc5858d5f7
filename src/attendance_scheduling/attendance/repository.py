from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRecordRepository(Protocol):
    def get(self, *, business_id: str, record_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def find_open(
        self,
        *,
        business_id: str,
        employee_position_id: str,
        record_id: Optional[str] = None,
        for_update: bool = False,
    ) -> Optional[AttendanceRecord]:
        """Newest IN_PROGRESS record of the employee position (optionally a specific id)."""

        raise NotImplementedError

    def insert(self, record: AttendanceRecord) -> None:
        """Raises ConflictError when the position already has an open record."""

        raise NotImplementedError

    def save(self, record: AttendanceRecord) -> bool:
        raise NotImplementedError

    def set_exception_flagged(self, *, record_id: str, flagged: bool, now: datetime) -> bool:
        raise NotImplementedError

    def list_recent(self, *, business_id: str, employee_position_id: str, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def count_between(self, *, business_id: str, start: datetime, end: datetime) -> int:
        """Records whose work date falls in [start, end)."""

        raise NotImplementedError

    def count_in_progress(self, *, business_id: str) -> int:
        raise NotImplementedError
