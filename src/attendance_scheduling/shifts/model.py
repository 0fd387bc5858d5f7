from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Sequence

from ..core.enums import Lifecycle, Weekday


@dataclass(frozen=True)
class ShiftTemplate:
    """Thực thể miền (domain): Mẫu ca làm việc lặp lại.

    The window is expressed in minutes since midnight: 0 <= start < end <= 1440.
    """

    id: str
    business_id: str
    name: str
    start_minutes: int
    end_minutes: int
    description: Optional[str] = None
    timezone: Optional[str] = None
    break_minutes: Optional[int] = None
    days_of_week: tuple[Weekday, ...] = ()
    policy_id: Optional[str] = None
    metadata: Any = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def lifecycle(self) -> Lifecycle:
        return Lifecycle.ACTIVE if self.is_active else Lifecycle.ARCHIVED

    @property
    def paid_minutes(self) -> int:
        return max(0, self.end_minutes - self.start_minutes - int(self.break_minutes or 0))


@dataclass(frozen=True)
class ShiftTemplateInput:
    business_id: str
    name: str
    start_minutes: int
    end_minutes: int
    days_of_week: Sequence[Weekday | str]
    id: Optional[str] = None
    description: Optional[str] = None
    timezone: Optional[str] = None
    break_minutes: Optional[int] = None
    policy_id: Optional[str] = None
    metadata: Any = None
    is_active: bool = True
