"""JSON helpers shared by the Flask controllers."""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from flask import Flask, jsonify, request

from ..core.exceptions import ConflictError, DomainError, NotFoundError, ValidationError
from .datetime_utils import parse_iso_date, parse_iso_datetime
from .sentinel import UNSET

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
)


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.title() for p in rest)


def to_payload(value: Any) -> Any:
    """Dataclasses, enums and dates to plain JSON values (camelCase keys)."""
    if is_dataclass(value) and not isinstance(value, type):
        out = {to_camel(f.name): to_payload(getattr(value, f.name)) for f in fields(value)}
        if isinstance(getattr(type(value), "lifecycle", None), property):
            out["lifecycle"] = value.lifecycle.value
        return out
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [to_payload(v) for v in value]
    if isinstance(value, dict):
        return {k: to_payload(v) for k, v in value.items()}
    return value


def ok(data: Any, status: int = 200):
    return jsonify({"success": True, "data": to_payload(data)}), status


def json_body() -> dict:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def body_value(body: dict, key: str) -> Any:
    """Value of ``key`` or UNSET when the key is absent (None is a real value)."""
    return body[key] if key in body else UNSET


def optional_date(value: Any, field_name: str) -> Optional[date]:
    if value in (None, ""):
        return None
    try:
        return parse_iso_date(str(value)[:10])
    except ValueError as exc:
        raise ValidationError(f"{field_name} must be a YYYY-MM-DD date") from exc


def optional_datetime(value: Any, field_name: str) -> Optional[datetime]:
    if value in (None, ""):
        return None
    try:
        return parse_iso_datetime(str(value))
    except ValueError as exc:
        raise ValidationError(f"{field_name} must be an ISO-8601 timestamp") from exc


def optional_int(value: Any, field_name: str) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field_name} must be an integer") from exc


def flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 400)
        return jsonify({"success": False, "error": type(exc).__name__, "message": str(exc)}), status
