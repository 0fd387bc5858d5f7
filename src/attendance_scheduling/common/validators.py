from __future__ import annotations

from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        if value is None:
            raise ValidationError(f"{field_name} must not be empty")
        raise ValidationError(f"{field_name} must be a string")
    if not value.strip():
        raise ValidationError(f"{field_name} must not be empty")
    return value.strip()


def require_int(value: Any, field_name: str) -> int:
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field_name} must be an integer") from exc


def require_non_negative(value: Any, field_name: str) -> Optional[int]:
    if value is None:
        return None
    number = require_int(value, field_name)
    if number < 0:
        raise ValidationError(f"{field_name} must be zero or greater")
    return number


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, int(value)))


def optional_text(value: Any, field_name: str = "value") -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    return value.strip() or None
