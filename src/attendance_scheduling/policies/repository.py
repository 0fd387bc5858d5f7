from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import AttendancePolicy


class PolicyRepository(Protocol):
    def get(self, *, business_id: str, policy_id: str) -> Optional[AttendancePolicy]:
        raise NotImplementedError

    def list_for_business(self, *, business_id: str, include_inactive: bool = False) -> Sequence[AttendancePolicy]:
        """Default first, then newest first."""

        raise NotImplementedError

    def find_active_default(self, *, business_id: str) -> Optional[AttendancePolicy]:
        raise NotImplementedError

    def find_oldest_active(self, *, business_id: str) -> Optional[AttendancePolicy]:
        raise NotImplementedError

    def insert(self, policy: AttendancePolicy) -> None:
        raise NotImplementedError

    def update(self, policy: AttendancePolicy) -> bool:
        raise NotImplementedError

    def demote_defaults(self, *, business_id: str, except_id: str, now: datetime) -> int:
        """Clear is_default on every other policy of the business. Returns rows changed."""

        raise NotImplementedError

    def set_active(self, *, business_id: str, policy_id: str, active: bool, now: datetime) -> bool:
        raise NotImplementedError
