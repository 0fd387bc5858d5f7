from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from attendance_scheduling.core.enums import WORKWEEK, Lifecycle, Weekday
from attendance_scheduling.core.exceptions import PolicyNotFound, ValidationError
from attendance_scheduling.policies.model import PolicyInput

BUSINESS = "biz-1"


def test_ensure_default_creates_fallback_once(world, now):
    first = world.policy_service.ensure_default_policy(BUSINESS, now=now)
    second = world.policy_service.ensure_default_policy(BUSINESS, now=now + timedelta(hours=1))

    assert first.id == second.id
    assert first.name == "Standard Attendance Policy"
    assert first.description == "Automatically generated default attendance policy"
    assert first.timezone == "UTC"
    assert first.grace_period_minutes == 5
    assert first.working_days == WORKWEEK
    assert first.is_default is True
    assert len(world.policies.rows) == 1


def test_fallback_race_returns_the_committed_default(world, now, monkeypatch):
    winner = world.policy_service.ensure_default_policy(BUSINESS, now=now)
    find_default = world.policies.find_active_default
    reads = []

    # The first read predates the winner's commit.
    def stale_then_fresh(*, business_id):
        reads.append(business_id)
        return None if len(reads) == 1 else find_default(business_id=business_id)

    monkeypatch.setattr(world.policies, "find_active_default", stale_then_fresh)
    monkeypatch.setattr(world.policies, "find_oldest_active", lambda *, business_id: None)

    loser = world.policy_service.ensure_default_policy(BUSINESS, now=now)

    assert loser.id == winner.id
    assert len(world.policies.rows) == 1


def test_ensure_default_prefers_default_then_oldest_active(world, now):
    older = world.policy_service.upsert_policy(PolicyInput(business_id=BUSINESS, name="Old"), now=now)
    world.policy_service.upsert_policy(PolicyInput(business_id=BUSINESS, name="New"), now=now + timedelta(days=1))

    assert world.policy_service.ensure_default_policy(BUSINESS).id == older.id

    default = world.policy_service.upsert_policy(
        PolicyInput(business_id=BUSINESS, name="Night", is_default=True), now=now + timedelta(days=2)
    )
    assert world.policy_service.ensure_default_policy(BUSINESS).id == default.id
    assert len(world.policies.rows) == 3


def test_ensure_default_ignores_archived_policies(world, now):
    archived = world.policy_service.upsert_policy(
        PolicyInput(business_id=BUSINESS, name="Archived", is_default=True, active=False), now=now
    )

    fallback = world.policy_service.ensure_default_policy(BUSINESS, now=now)

    assert fallback.id != archived.id
    assert fallback.is_default


def test_new_default_demotes_previous_default(world, now):
    a = world.policy_service.upsert_policy(PolicyInput(business_id=BUSINESS, name="A", is_default=True), now=now)
    b = world.policy_service.upsert_policy(
        PolicyInput(business_id=BUSINESS, name="B", is_default=True), now=now + timedelta(minutes=1)
    )

    defaults = [p for p in world.policies.rows.values() if p.is_default]
    assert [p.id for p in defaults] == [b.id]
    assert world.policies.rows[a.id].is_default is False


def test_update_keeps_created_at_and_rejects_unknown_id(world, now):
    created = world.policy_service.upsert_policy(
        PolicyInput(business_id=BUSINESS, name="Office", working_days=["monday", "TUESDAY"]), now=now
    )
    later = now + timedelta(days=3)
    updated = world.policy_service.upsert_policy(
        PolicyInput(business_id=BUSINESS, id=created.id, name="Office v2", grace_period_minutes=10), now=later
    )

    assert updated.created_at == now
    assert updated.updated_at == later
    assert updated.grace_period_minutes == 10
    assert created.working_days == (Weekday.MONDAY, Weekday.TUESDAY)

    with pytest.raises(PolicyNotFound):
        world.policy_service.upsert_policy(PolicyInput(business_id=BUSINESS, id="missing", name="X"), now=now)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"name": "   "},
        {"name": 5},
        {"name": "P", "grace_period_minutes": "soon"},
        {"name": "P", "description": 7},
        {"name": "P", "grace_period_minutes": -1},
        {"name": "P", "geofence_radius_meters": -5},
        {"name": "P", "working_days": ["FUNDAY"]},
        {"name": "P", "effective_from": date(2026, 3, 1), "effective_to": date(2026, 2, 1)},
    ],
)
def test_upsert_rejects_invalid_input(world, now, kwargs):
    with pytest.raises(ValidationError):
        world.policy_service.upsert_policy(PolicyInput(business_id=BUSINESS, **kwargs), now=now)


def test_list_policies_hides_archived_by_default(world, now):
    keep = world.policy_service.upsert_policy(PolicyInput(business_id=BUSINESS, name="Keep"), now=now)
    gone = world.policy_service.upsert_policy(PolicyInput(business_id=BUSINESS, name="Gone"), now=now)
    archived = world.policy_service.deactivate_policy(BUSINESS, gone.id, now=now)

    assert archived.lifecycle == Lifecycle.ARCHIVED
    assert [p.id for p in world.policy_service.list_policies(BUSINESS)] == [keep.id]
    assert {p.id for p in world.policy_service.list_policies(BUSINESS, include_inactive=True)} == {keep.id, gone.id}

    with pytest.raises(PolicyNotFound):
        world.policy_service.deactivate_policy(BUSINESS, "missing", now=now)


def test_default_listed_first(world):
    world.policy_service.upsert_policy(PolicyInput(business_id=BUSINESS, name="Plain"), now=datetime(2026, 2, 3))
    default = world.policy_service.upsert_policy(
        PolicyInput(business_id=BUSINESS, name="Default", is_default=True), now=datetime(2026, 2, 1)
    )

    assert world.policy_service.list_policies(BUSINESS)[0].id == default.id
