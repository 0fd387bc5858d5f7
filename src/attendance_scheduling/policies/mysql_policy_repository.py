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
from .model import AttendancePolicy
from .repository import PolicyRepository

_COLUMNS = """
    id, business_id, name, description, timezone, rounding_increment_minutes,
    grace_period_minutes, auto_clock_out_after_minutes, require_geolocation,
    geofence_radius_meters, working_days, metadata, is_default, effective_from,
    effective_to, active, created_at, updated_at
"""


def _to_policy(r: Dict[str, Any]) -> AttendancePolicy:
    return AttendancePolicy(
        id=r["id"],
        business_id=r["business_id"],
        name=r["name"],
        description=r.get("description"),
        timezone=r.get("timezone"),
        rounding_increment_minutes=optional_int(r.get("rounding_increment_minutes")),
        grace_period_minutes=optional_int(r.get("grace_period_minutes")),
        auto_clock_out_after_minutes=optional_int(r.get("auto_clock_out_after_minutes")),
        require_geolocation=as_bool(r.get("require_geolocation")),
        geofence_radius_meters=optional_int(r.get("geofence_radius_meters")),
        working_days=tuple(Weekday(d) for d in (from_json(r.get("working_days")) or [])),
        metadata=from_json(r.get("metadata")),
        is_default=as_bool(r.get("is_default")),
        effective_from=r.get("effective_from"),
        effective_to=r.get("effective_to"),
        active=as_bool(r.get("active")),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _params(p: AttendancePolicy) -> tuple:
    return (
        p.name,
        p.description,
        p.timezone,
        p.rounding_increment_minutes,
        p.grace_period_minutes,
        p.auto_clock_out_after_minutes,
        int(p.require_geolocation),
        p.geofence_radius_meters,
        to_json([d.value for d in p.working_days]),
        to_json(p.metadata),
        int(p.is_default),
        p.effective_from,
        p.effective_to,
        int(p.active),
        p.updated_at,
    )


class MySQLPolicyRepository(PolicyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, business_id: str, policy_id: str) -> Optional[AttendancePolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_policies WHERE id=%s AND business_id=%s",
                (policy_id, business_id),
            )
            r = fetchone(cur)
            return _to_policy(r) if r else None

    def list_for_business(self, *, business_id: str, include_inactive: bool = False) -> Sequence[AttendancePolicy]:
        where = "business_id=%s" if include_inactive else "business_id=%s AND active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_policies
                WHERE {where}
                ORDER BY is_default DESC, created_at DESC
                """,
                (business_id,),
            )
            return [_to_policy(r) for r in fetchall(cur)]

    def find_active_default(self, *, business_id: str) -> Optional[AttendancePolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_policies
                WHERE business_id=%s AND active=1 AND is_default=1
                LIMIT 1
                """,
                (business_id,),
            )
            r = fetchone(cur)
            return _to_policy(r) if r else None

    def find_oldest_active(self, *, business_id: str) -> Optional[AttendancePolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_policies
                WHERE business_id=%s AND active=1
                ORDER BY created_at ASC
                LIMIT 1
                """,
                (business_id,),
            )
            r = fetchone(cur)
            return _to_policy(r) if r else None

    def insert(self, policy: AttendancePolicy) -> None:
        with unique_violation_as_conflict("Business already has a default attendance policy"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_policies(
                        name, description, timezone, rounding_increment_minutes,
                        grace_period_minutes, auto_clock_out_after_minutes, require_geolocation,
                        geofence_radius_meters, working_days, metadata, is_default,
                        effective_from, effective_to, active, updated_at,
                        id, business_id, created_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    _params(policy) + (policy.id, policy.business_id, policy.created_at),
                )

    def update(self, policy: AttendancePolicy) -> bool:
        with unique_violation_as_conflict("Business already has a default attendance policy"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE attendance_policies
                    SET name=%s, description=%s, timezone=%s, rounding_increment_minutes=%s,
                        grace_period_minutes=%s, auto_clock_out_after_minutes=%s,
                        require_geolocation=%s, geofence_radius_meters=%s, working_days=%s,
                        metadata=%s, is_default=%s, effective_from=%s, effective_to=%s,
                        active=%s, updated_at=%s
                    WHERE id=%s AND business_id=%s
                    """,
                    _params(policy) + (policy.id, policy.business_id),
                )
                return cur.rowcount > 0

    def demote_defaults(self, *, business_id: str, except_id: str, now: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_policies
                SET is_default=0, updated_at=%s
                WHERE business_id=%s AND id<>%s AND is_default=1
                """,
                (now, business_id, except_id),
            )
            return int(cur.rowcount)

    def set_active(self, *, business_id: str, policy_id: str, active: bool, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_policies SET active=%s, updated_at=%s WHERE id=%s AND business_id=%s",
                (int(active), now, policy_id, business_id),
            )
            return cur.rowcount > 0
