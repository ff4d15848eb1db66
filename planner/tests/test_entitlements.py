"""
Tests for entitlement resolution.

Coverage:
- Pure decision: admin short-circuit, active-only subscriptions, purchases
- Predicates (printable-only, full platform, song access)
- Database-backed resolver, including fail-closed behaviour
"""

import pytest

from finalwishes.config.product_roles import LookupKeys, Roles
from finalwishes.models import AppRole, Purchase, PurchaseStatus, Subscription, UserRole
from finalwishes.services.entitlements import (
    AccessKind,
    Entitlement,
    EntitlementResolver,
    resolve_entitlement,
)


# =============================================================================
# Pure decision
# =============================================================================

def test_admin_short_circuits_everything():
    entitlement = resolve_entitlement(True, None, None)
    assert entitlement.kind is AccessKind.ADMIN
    assert entitlement.has_access
    assert entitlement.is_master_account
    assert entitlement.has_active_subscription
    assert entitlement.has_printable_access
    assert not entitlement.is_printable_only


def test_active_subscription_grants_its_roles():
    entitlement = resolve_entitlement(False, "active", LookupKeys.VIP_YEAR)
    assert entitlement.kind is AccessKind.ACTIVE_SUBSCRIPTION
    assert entitlement.roles == {Roles.VIP, Roles.PRINTABLE}
    assert entitlement.has_full_platform_access
    assert not entitlement.is_master_account


@pytest.mark.parametrize("status", ["trialing", "past_due", "canceled", "incomplete", None])
def test_non_active_subscription_grants_nothing(status):
    entitlement = resolve_entitlement(False, status, LookupKeys.PREMIUM)
    assert entitlement.kind is AccessKind.NO_ACCESS
    assert not entitlement.has_access
    assert not entitlement.has_active_subscription
    assert not entitlement.is_master_account
    assert entitlement.roles == set()


def test_purchases_count_without_subscription():
    entitlement = resolve_entitlement(False, "canceled", LookupKeys.BASIC, [LookupKeys.SONG_STANDARD])
    assert entitlement.kind is AccessKind.PURCHASED
    assert entitlement.roles == {Roles.SONG_STANDARD}
    assert entitlement.has_song_request_access
    assert not entitlement.has_active_subscription


def test_printable_only_when_no_planner_role():
    role_map = {"PRINTS": (Roles.PRINTABLE,)}
    entitlement = resolve_entitlement(False, None, None, ["PRINTS"], role_map=role_map)
    assert entitlement.has_printable_access
    assert entitlement.is_printable_only
    assert not entitlement.has_digital_planner_access


def test_planner_role_clears_printable_only():
    entitlement = resolve_entitlement(False, "active", LookupKeys.BASIC)
    assert entitlement.has_printable_access
    assert not entitlement.is_printable_only


def test_access_flags_use_camel_case():
    flags = resolve_entitlement(False, "active", LookupKeys.BASIC).access_flags()
    assert flags["kind"] == "active_subscription"
    assert flags["hasAccess"] is True
    assert flags["roles"] == sorted([Roles.BASIC, Roles.PRINTABLE])


# =============================================================================
# Resolver against the database
# =============================================================================

async def test_resolver_without_user_denies():
    resolver = EntitlementResolver()
    assert (await resolver.resolve(None, None)) == Entitlement.no_access()


async def test_resolver_reads_admin_grant(db, test_user):
    db.add(UserRole(user_id=test_user.id, role=AppRole.ADMIN.value))
    await db.commit()

    resolver = EntitlementResolver()
    assert await resolver.is_admin(db, test_user.id)
    assert (await resolver.resolve(db, test_user.id)).is_admin


async def test_resolver_combines_subscription_and_purchases(db, test_user):
    db.add(Subscription(user_id=test_user.id, lookup_key=LookupKeys.BASIC, status="active"))
    db.add(Purchase(user_id=test_user.id, product_lookup_key=LookupKeys.BINDER))
    db.add(Purchase(
        user_id=test_user.id,
        product_lookup_key=LookupKeys.SONG_PREMIUM,
        status=PurchaseStatus.REFUNDED.value,
    ))
    await db.commit()

    entitlement = await EntitlementResolver().resolve(db, test_user.id)
    assert entitlement.kind is AccessKind.ACTIVE_SUBSCRIPTION
    assert entitlement.roles == {Roles.BASIC, Roles.PRINTABLE, Roles.BINDER}
    assert entitlement.has_premium_tools_access
    assert not entitlement.has_song_request_access


async def test_resolver_fails_closed(test_user):
    class BrokenSession:
        async def execute(self, *args, **kwargs):
            raise RuntimeError("database unavailable")

    resolver = EntitlementResolver()
    entitlement = await resolver.resolve(BrokenSession(), test_user.id)
    assert entitlement.kind is AccessKind.NO_ACCESS
    assert await resolver.is_admin(BrokenSession(), test_user.id) is False


# =============================================================================
# Access endpoints
# =============================================================================

async def test_access_requires_auth(client):
    response = await client.get("/api/v1/access")
    assert response.status_code == 401


async def test_access_flags_endpoint(authed_client, db, test_user):
    db.add(Subscription(user_id=test_user.id, lookup_key=LookupKeys.VIP_MONTHLY, status="active"))
    await db.commit()

    response = await authed_client.get("/api/v1/access")
    assert response.status_code == 200
    body = response.json()
    assert body["hasFullPlatformAccess"] is True
    assert body["isAdmin"] is False

    response = await authed_client.get("/api/v1/access/subscription")
    assert response.json() == {
        "hasActiveSubscription": True,
        "isMasterAccount": False,
        "subscriptionStatus": "active",
    }
