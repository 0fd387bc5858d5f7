from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import Weekday
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    as_bool,
    db_cursor,
    fetchall,
    fetchone,
    from_json,
    optional_int,
    to_json,
    unique_violation_as_conflict,
)
from .model import ShiftTemplate
from .repository import ShiftTemplateRepository

TEMPLATE_COLUMNS = (
    "id",
    "business_id",
    "name",
    "description",
    "timezone",
    "start_minutes",
    "end_minutes",
    "break_minutes",
    "days_of_week",
    "policy_id",
    "metadata",
    "is_active",
    "created_at",
    "updated_at",
)


def to_shift_template(r: Dict[str, Any], *, prefix: str = "") -> ShiftTemplate:
    """Build a template from a row; ``prefix`` selects aliased join columns."""

    def col(name: str):
        return r.get(prefix + name)

    return ShiftTemplate(
        id=col("id"),
        business_id=col("business_id"),
        name=col("name"),
        start_minutes=int(col("start_minutes")),
        end_minutes=int(col("end_minutes")),
        description=col("description"),
        timezone=col("timezone"),
        break_minutes=optional_int(col("break_minutes")),
        days_of_week=tuple(Weekday(d) for d in (from_json(col("days_of_week")) or [])),
        policy_id=col("policy_id"),
        metadata=from_json(col("metadata")),
        is_active=as_bool(col("is_active")),
        created_at=col("created_at"),
        updated_at=col("updated_at"),
    )


def template_select_list(alias: str, prefix: str) -> str:
    return ", ".join(f"{alias}.{c} AS {prefix}{c}" for c in TEMPLATE_COLUMNS)


class MySQLShiftTemplateRepository(ShiftTemplateRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, business_id: str, template_id: str) -> Optional[ShiftTemplate]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {", ".join(TEMPLATE_COLUMNS)}
                FROM attendance_shift_templates
                WHERE id=%s AND business_id=%s
                """,
                (template_id, business_id),
            )
            r = fetchone(cur)
            return to_shift_template(r) if r else None

    def list_for_business(self, *, business_id: str, include_inactive: bool = False) -> Sequence[ShiftTemplate]:
        where = "business_id=%s" if include_inactive else "business_id=%s AND is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {", ".join(TEMPLATE_COLUMNS)}
                FROM attendance_shift_templates
                WHERE {where}
                ORDER BY is_active DESC, created_at DESC
                """,
                (business_id,),
            )
            return [to_shift_template(r) for r in fetchall(cur)]

    def insert(self, template: ShiftTemplate) -> None:
        with unique_violation_as_conflict(f"A shift template named {template.name!r} already exists"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_shift_templates(
                        id, business_id, name, description, timezone, start_minutes, end_minutes,
                        break_minutes, days_of_week, policy_id, metadata, is_active, created_at, updated_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        template.id,
                        template.business_id,
                        template.name,
                        template.description,
                        template.timezone,
                        template.start_minutes,
                        template.end_minutes,
                        template.break_minutes,
                        to_json([d.value for d in template.days_of_week]),
                        template.policy_id,
                        to_json(template.metadata),
                        int(template.is_active),
                        template.created_at,
                        template.updated_at,
                    ),
                )

    def update(self, template: ShiftTemplate) -> bool:
        with unique_violation_as_conflict(f"A shift template named {template.name!r} already exists"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE attendance_shift_templates
                    SET name=%s, description=%s, timezone=%s, start_minutes=%s, end_minutes=%s,
                        break_minutes=%s, days_of_week=%s, policy_id=%s, metadata=%s,
                        is_active=%s, updated_at=%s
                    WHERE id=%s AND business_id=%s
                    """,
                    (
                        template.name,
                        template.description,
                        template.timezone,
                        template.start_minutes,
                        template.end_minutes,
                        template.break_minutes,
                        to_json([d.value for d in template.days_of_week]),
                        template.policy_id,
                        to_json(template.metadata),
                        int(template.is_active),
                        template.updated_at,
                        template.id,
                        template.business_id,
                    ),
                )
                return cur.rowcount > 0

    def set_active(self, *, business_id: str, template_id: str, is_active: bool, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_shift_templates
                SET is_active=%s, updated_at=%s
                WHERE id=%s AND business_id=%s
                """,
                (int(is_active), now, template_id, business_id),
            )
            return cur.rowcount > 0
