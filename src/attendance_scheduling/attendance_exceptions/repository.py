from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import AttendanceException, ExceptionQuery, ExceptionView


class AttendanceExceptionRepository(Protocol):
    def get(self, *, business_id: str, exception_id: str, for_update: bool = False) -> Optional[AttendanceException]:
        raise NotImplementedError

    def insert(self, exception: AttendanceException) -> None:
        raise NotImplementedError

    def save_resolution(self, exception: AttendanceException) -> bool:
        """Persist status, notes, resolver and payload of ``exception``."""

        raise NotImplementedError

    def count_pending_for_record(self, *, record_id: str) -> int:
        raise NotImplementedError

    def count_pending(self, *, business_id: str) -> int:
        raise NotImplementedError

    def count_matching(self, query: ExceptionQuery) -> int:
        raise NotImplementedError

    def list_page(self, query: ExceptionQuery, *, offset: int, limit: int) -> Sequence[ExceptionView]:
        """Newest detected first."""

        raise NotImplementedError
