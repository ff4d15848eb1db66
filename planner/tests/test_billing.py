"""
Tests for Stripe billing: products, checkout, portal and checkout verification.

Stripe API calls are replaced with fakes; nothing leaves the process.
"""

import pytest
import stripe
from fastapi import HTTPException

from finalwishes.config.product_roles import LookupKeys
from finalwishes.models import Subscription
from finalwishes.services.billing import (
    billing_service,
    is_checkout_paid,
    stripe_value,
    summarize_line_item,
)


def _price(lookup_key=LookupKeys.BASIC, **overrides):
    price = {
        "id": "price_123",
        "lookup_key": lookup_key,
        "unit_amount": 1999,
        "currency": "usd",
        "type": "recurring",
        "active": True,
        "recurring": {"interval": "month", "interval_count": 1},
        "product": {"id": "prod_1", "name": "Basic Plan", "description": "", "images": [], "active": True},
    }
    price.update(overrides)
    return price


@pytest.fixture
def fake_prices(monkeypatch):
    prices = {"data": [_price()]}
    calls = []

    def fake_list(**kwargs):
        calls.append(kwargs)
        keys = kwargs.get("lookup_keys") or []
        return {"data": [p for p in prices["data"] if p["lookup_key"] in keys]}

    monkeypatch.setattr(stripe.Price, "list", fake_list)
    return prices, calls


# =============================================================================
# Helpers
# =============================================================================

def test_stripe_value_walks_nested_dicts():
    session = {"customer_details": {"email": "a@b.com"}, "metadata": None}
    assert stripe_value(session, "customer_details", "email") == "a@b.com"
    assert stripe_value(session, "metadata", "user_id", default="none") == "none"
    assert stripe_value(None, "anything") is None


@pytest.mark.parametrize("session,paid", [
    ({"payment_status": "paid", "status": "open"}, True),
    ({"payment_status": "no_payment_required", "status": "open"}, True),
    ({"payment_status": "unpaid", "status": "complete"}, True),
    ({"payment_status": "unpaid", "status": "open"}, False),
    ({}, False),
])
def test_is_checkout_paid(session, paid):
    assert is_checkout_paid(session) is paid


def test_summarize_line_item():
    item = {"description": "Fallback", "price": _price(LookupKeys.BINDER, type="one_time", recurring=None)}
    assert summarize_line_item(item) == {
        "lookupKey": LookupKeys.BINDER,
        "name": "Basic Plan",
        "type": "one_time",
        "interval": None,
    }


# =============================================================================
# Service
# =============================================================================

async def test_get_product(fake_prices):
    product = await billing_service.get_product(LookupKeys.BASIC)
    assert product["priceId"] == "price_123"
    assert product["amount"] == 1999
    assert product["interval"] == "month"


async def test_unknown_product_is_404(fake_prices):
    with pytest.raises(HTTPException) as exc:
        await billing_service.get_product("NOPE")
    assert exc.value.status_code == 404


async def test_checkout_session_carries_metadata(fake_prices, monkeypatch, test_user):
    created = {}

    def fake_create(**params):
        created.update(params)
        return {"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    result = await billing_service.create_checkout_session(
        lookup_key=LookupKeys.BASIC,
        success_url="https://app.test/ok",
        cancel_url="https://app.test/cancel",
        user_id=test_user.id,
        trial_days=7,
    )

    assert result == {"url": "https://checkout.stripe.test/cs_test_1", "session_id": "cs_test_1"}
    assert created["mode"] == "subscription"
    assert created["line_items"] == [{"price": "price_123", "quantity": 1}]
    assert created["metadata"] == {"lookup_key": LookupKeys.BASIC, "user_id": str(test_user.id)}
    assert created["subscription_data"] == {"trial_period_days": 7}


async def test_payment_mode_ignores_trial(fake_prices, monkeypatch):
    created = {}

    def fake_create(**params):
        created.update(params)
        return {"id": "cs_2", "url": "https://checkout.stripe.test/cs_2"}

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    await billing_service.create_checkout_session(
        LookupKeys.BASIC, "https://ok", "https://cancel", mode="payment", trial_days=7,
    )
    assert created["mode"] == "payment"
    assert "subscription_data" not in created


async def test_checkout_without_price_is_400(fake_prices):
    with pytest.raises(HTTPException) as exc:
        await billing_service.create_checkout_session("MISSING", "https://ok", "https://cancel")
    assert exc.value.status_code == 400


async def test_verify_checkout(monkeypatch):
    monkeypatch.setattr(stripe.checkout.Session, "retrieve", lambda session_id: {
        "id": session_id,
        "payment_status": "paid",
        "status": "complete",
        "customer_details": {"email": "buyer@example.com"},
    })
    monkeypatch.setattr(stripe.checkout.Session, "list_line_items", lambda session_id, **kw: {
        "data": [
            {"price": _price(LookupKeys.SONG_STANDARD, type="one_time", recurring=None)},
            {"price": {"lookup_key": None}, "description": "Tax"},
        ]
    })

    result = await billing_service.verify_checkout_session("cs_done")

    assert result["paid"] is True
    assert result["customerEmail"] == "buyer@example.com"
    assert [item["lookupKey"] for item in result["items"]] == [LookupKeys.SONG_STANDARD]


async def test_verify_checkout_requires_session_id():
    with pytest.raises(HTTPException) as exc:
        await billing_service.verify_checkout_session("")
    assert exc.value.status_code == 400


async def test_stripe_error_maps_to_500(monkeypatch):
    def boom(**kwargs):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.Price, "list", boom)
    with pytest.raises(HTTPException) as exc:
        await billing_service.get_product(LookupKeys.BASIC)
    assert exc.value.status_code == 500


async def test_validate_lookup_keys(fake_prices):
    prices, _ = fake_prices
    prices["data"].append(_price(LookupKeys.BINDER, id="price_b", active=False))

    report = await billing_service.validate_lookup_keys()

    assert {p["lookupKey"] for p in report["found"]} == {LookupKeys.BASIC, LookupKeys.BINDER}
    assert report["inactive"] == [LookupKeys.BINDER]
    assert LookupKeys.PREMIUM in report["missing"]
    assert report["duplicates"] == []


# =============================================================================
# Endpoints
# =============================================================================

async def test_product_endpoint(client, fake_prices):
    response = await client.post("/api/v1/billing/product", json={"lookupKey": LookupKeys.BASIC})
    assert response.status_code == 200
    assert response.json()["name"] == "Basic Plan"

    response = await client.post("/api/v1/billing/product", json={"lookupKey": "NOPE"})
    assert response.status_code == 404


async def test_portal_without_customer_is_404(authed_client):
    response = await authed_client.post("/api/v1/billing/portal", json={})
    assert response.status_code == 404
    assert response.json()["detail"] == "No billing account found"


async def test_portal_session(authed_client, db, test_user, monkeypatch):
    db.add(Subscription(user_id=test_user.id, stripe_customer_id="cus_1", status="active"))
    await db.commit()
    monkeypatch.setattr(
        stripe.billing_portal.Session, "create",
        lambda **kw: {"url": f"https://billing.stripe.test/{kw['customer']}"},
    )

    response = await authed_client.post("/api/v1/billing/portal", json={"returnUrl": "https://app.test"})
    assert response.status_code == 200
    assert response.json() == {"url": "https://billing.stripe.test/cus_1"}


async def test_checkout_endpoint_tags_signed_in_user(authed_client, test_user, fake_prices, monkeypatch):
    created = {}

    def fake_create(**params):
        created.update(params)
        return {"id": "cs_3", "url": "https://checkout.stripe.test/cs_3"}

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    response = await authed_client.post("/api/v1/billing/checkout", json={"lookupKey": LookupKeys.BASIC})
    assert response.status_code == 200
    assert response.json()["url"] == "https://checkout.stripe.test/cs_3"
    assert created["metadata"]["user_id"] == str(test_user.id)
    assert created["customer_email"] == test_user.email
