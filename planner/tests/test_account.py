"""
Tests for data export and account deletion.
"""

from sqlalchemy import func, select

from finalwishes.config.product_roles import LookupKeys
from finalwishes.models import Appointment, Org, OrgMember, Pet, Plan, Subscription, User
from finalwishes.services.plan_resolver import resolve_active_plan

from conftest import auth_for, make_user


async def _seed_plan(db, user):
    active = await resolve_active_plan(db, user.id, create_if_missing=True)
    db.add(Pet(plan_id=active.plan_id, name="Rex"))
    db.add(Subscription(user_id=user.id, lookup_key=LookupKeys.BASIC, status="active"))
    db.add(Appointment(user_id=user.id, starts_at="2025-03-01T15:00:00Z", ends_at="2025-03-01T16:00:00Z"))
    await db.commit()
    return active


async def _count(db, model, *criteria) -> int:
    return (await db.execute(select(func.count()).select_from(model).where(*criteria))).scalar_one()


# =============================================================================
# Export
# =============================================================================

async def test_export_contains_every_table(authed_client, db, test_user):
    active = await _seed_plan(db, test_user)

    response = await authed_client.get("/api/v1/plans/export")

    assert response.status_code == 200
    body = response.json()
    assert body["user_id"] == str(test_user.id)
    assert "warnings" not in body

    data = body["data"]
    assert data["user"]["email"] == test_user.email
    assert "password_hash" not in data["user"]
    assert [plan["id"] for plan in data["plans"]] == [str(active.plan_id)]
    assert [pet["name"] for pet in data["pets"]] == ["Rex"]
    assert data["subscriptions"][0]["lookup_key"] == LookupKeys.BASIC
    assert len(data["appointments"]) == 1
    assert len(data["org_memberships"]) == 1


async def test_export_without_plan(authed_client):
    response = await authed_client.get("/api/v1/plans/export")

    assert response.status_code == 200
    assert response.json()["data"]["plans"] == []


async def test_export_requires_auth(client):
    response = await client.get("/api/v1/plans/export")
    assert response.status_code == 401


# =============================================================================
# Deletion
# =============================================================================

async def test_delete_requires_confirmation(authed_client, db, test_user):
    response = await authed_client.request("DELETE", "/api/v1/auth/account")
    assert response.status_code == 400

    response = await authed_client.request("DELETE", "/api/v1/auth/account", json={"confirm": "yes"})
    assert response.status_code == 400

    assert await _count(db, User, User.id == test_user.id) == 1


async def test_delete_requires_auth(client):
    response = await client.request("DELETE", "/api/v1/auth/account", json={"confirm": "DELETE"})
    assert response.status_code == 401


async def test_delete_removes_account_and_plan_data(authed_client, db, test_user):
    active = await _seed_plan(db, test_user)
    other = await make_user(db)
    other_plan = await _seed_plan(db, other)

    response = await authed_client.request("DELETE", "/api/v1/auth/account", json={"confirm": "DELETE"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["deleted"]["pets"] == 1
    assert body["deleted"]["users"] == 1

    assert await _count(db, User, User.id == test_user.id) == 0
    assert await _count(db, Plan, Plan.id == active.plan_id) == 0
    assert await _count(db, Pet, Pet.plan_id == active.plan_id) == 0
    assert await _count(db, Org, Org.id == active.org_id) == 0
    assert await _count(db, OrgMember, OrgMember.user_id == test_user.id) == 0
    assert await _count(db, Subscription, Subscription.user_id == test_user.id) == 0
    assert await _count(db, Appointment, Appointment.user_id == test_user.id) == 0

    # Someone else's plan is untouched
    assert await _count(db, Pet, Pet.plan_id == other_plan.plan_id) == 1
    assert await _count(db, User, User.id == other.id) == 1

    # The old token no longer resolves to a user
    response = await authed_client.get("/api/v1/auth/me")
    assert response.status_code == 401


async def test_delete_leaves_other_sessions_working(client, db, test_user):
    other = await make_user(db)
    await _seed_plan(db, other)

    response = await client.request(
        "DELETE", "/api/v1/auth/account",
        json={"confirm": "DELETE"},
        headers=auth_for(test_user).headers,
    )
    assert response.status_code == 200

    response = await client.get("/api/v1/plans/export", headers=auth_for(other).headers)
    assert response.status_code == 200
    assert [pet["name"] for pet in response.json()["data"]["pets"]] == ["Rex"]
