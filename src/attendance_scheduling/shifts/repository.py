from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import ShiftTemplate


class ShiftTemplateRepository(Protocol):
    def get(self, *, business_id: str, template_id: str) -> Optional[ShiftTemplate]:
        raise NotImplementedError

    def list_for_business(self, *, business_id: str, include_inactive: bool = False) -> Sequence[ShiftTemplate]:
        """Active first, then newest first."""

        raise NotImplementedError

    def insert(self, template: ShiftTemplate) -> None:
        raise NotImplementedError

    def update(self, template: ShiftTemplate) -> bool:
        raise NotImplementedError

    def set_active(self, *, business_id: str, template_id: str, is_active: bool, now: datetime) -> bool:
        raise NotImplementedError
