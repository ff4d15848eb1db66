"""
Tests for active plan resolution.
"""

import asyncio

import pytest
from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError

from finalwishes.models import DEFAULT_PLAN_TITLE, MemberRole, Org, OrgMember, Plan
from finalwishes.services.plan_resolver import (
    REASON_ERROR,
    REASON_INTEGRITY_ERROR,
    REASON_NOT_AUTHENTICATED,
    REASON_NOT_FOUND,
    resolve_active_plan,
)


async def test_missing_user_is_not_authenticated(db):
    result = await resolve_active_plan(db, None, create_if_missing=True)
    assert not result.found
    assert result.reason == REASON_NOT_AUTHENTICATED

    result = await resolve_active_plan(db, "not-a-uuid")
    assert result.reason == REASON_NOT_AUTHENTICATED


async def test_no_plan_without_creation(db, test_user):
    result = await resolve_active_plan(db, test_user.id)
    assert result.to_dict() == {"planId": None, "orgId": None, "reason": REASON_NOT_FOUND}

    count = await db.execute(select(func.count(Org.id)))
    assert count.scalar() == 0


async def test_creation_is_idempotent(db, test_user):
    first = await resolve_active_plan(db, test_user.id, create_if_missing=True)
    second = await resolve_active_plan(db, test_user.id, create_if_missing=True)

    assert first.found
    assert (first.plan_id, first.org_id) == (second.plan_id, second.org_id)
    assert first.plan.title == DEFAULT_PLAN_TITLE
    assert first.plan.prepared_for == "Test User"

    plans = await db.execute(select(func.count(Plan.id)))
    assert plans.scalar() == 1


async def test_concurrent_creation_yields_one_plan(session_factory, test_user):
    async def resolve():
        async with session_factory() as session:
            return await resolve_active_plan(session, test_user.id, create_if_missing=True)

    results = await asyncio.gather(*[resolve() for _ in range(3)])

    plan_ids = {r.plan_id for r in results if r.found}
    assert len(plan_ids) == 1


async def test_existing_org_without_plan_gets_one(db, test_user):
    org = Org(name="Existing")
    db.add(org)
    await db.flush()
    db.add(OrgMember(org_id=org.id, user_id=test_user.id, role=MemberRole.OWNER.value))
    await db.commit()

    missing = await resolve_active_plan(db, test_user.id)
    assert missing.reason == REASON_NOT_FOUND
    assert missing.org_id == org.id

    created = await resolve_active_plan(db, test_user.id, create_if_missing=True)
    assert created.found
    assert created.org_id == org.id


async def test_only_one_owner_membership_allowed(db, test_user):
    for name in ("One", "Two"):
        db.add(Org(name=name))
    await db.flush()
    orgs = (await db.execute(select(Org))).scalars().all()

    db.add(OrgMember(org_id=orgs[0].id, user_id=test_user.id, role=MemberRole.OWNER.value))
    await db.commit()

    db.add(OrgMember(org_id=orgs[1].id, user_id=test_user.id, role=MemberRole.OWNER.value))
    with pytest.raises(IntegrityError):
        await db.commit()
    await db.rollback()


async def test_multiple_owner_orgs_are_rejected(db, test_user):
    # Simulate data written before the unique owner index existed
    await db.execute(text("DROP INDEX uq_org_members_single_owner"))
    for name in ("One", "Two"):
        org = Org(name=name)
        db.add(org)
        await db.flush()
        db.add(OrgMember(org_id=org.id, user_id=test_user.id, role=MemberRole.OWNER.value))
    await db.commit()

    result = await resolve_active_plan(db, test_user.id, create_if_missing=True)
    assert not result.found
    assert result.reason == REASON_INTEGRITY_ERROR


async def test_storage_failure_is_reported_not_raised(test_user):
    class BrokenSession:
        async def execute(self, *args, **kwargs):
            raise RuntimeError("connection reset")

        async def rollback(self):
            pass

    result = await resolve_active_plan(BrokenSession(), test_user.id)
    assert result.reason == REASON_ERROR


async def test_active_plan_endpoint(authed_client):
    response = await authed_client.get("/api/v1/plans/active")
    assert response.status_code == 200
    assert response.json()["reason"] == REASON_NOT_FOUND

    response = await authed_client.get("/api/v1/plans/active", params={"createIfMissing": "true"})
    body = response.json()
    assert body["planId"]
    assert body["reason"] is None
