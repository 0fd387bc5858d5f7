from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class EmployeePosition:
    """Quan hệ tuyển dụng đang hiệu lực (thuộc nền tảng, chỉ đọc ở module này)."""

    id: str
    business_id: str
    user_id: str
    active: bool = True


@dataclass(frozen=True)
class EmployeeDisplay:
    """Read-model used to decorate assignment/exception listings."""

    employee_position_id: str
    user_id: str
    name: Optional[str]
    email: str
    department_name: Optional[str] = None
