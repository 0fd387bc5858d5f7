from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..core.enums import Lifecycle, Weekday


@dataclass(frozen=True)
class AttendancePolicy:
    """Thực thể miền (domain): Chính sách chấm công của một doanh nghiệp."""

    id: str
    business_id: str
    name: str
    description: Optional[str] = None
    timezone: Optional[str] = None
    rounding_increment_minutes: Optional[int] = None
    grace_period_minutes: Optional[int] = None
    auto_clock_out_after_minutes: Optional[int] = None
    require_geolocation: bool = False
    geofence_radius_meters: Optional[int] = None
    working_days: tuple[Weekday, ...] = ()
    metadata: Any = None
    is_default: bool = False
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def lifecycle(self) -> Lifecycle:
        return Lifecycle.ACTIVE if self.active else Lifecycle.ARCHIVED


@dataclass(frozen=True)
class PolicyInput:
    """Create (no id) or full-replace update (id) of a policy."""

    business_id: str
    name: str
    id: Optional[str] = None
    description: Optional[str] = None
    timezone: Optional[str] = None
    rounding_increment_minutes: Optional[int] = None
    grace_period_minutes: Optional[int] = None
    auto_clock_out_after_minutes: Optional[int] = None
    require_geolocation: bool = False
    geofence_radius_meters: Optional[int] = None
    working_days: Sequence[Weekday | str] = ()
    metadata: Any = None
    is_default: bool = False
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    active: bool = True
