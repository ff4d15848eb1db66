"""
Billing Management Service
Stripe products by lookup key, checkout, customer portal and checkout verification
"""

import os
import stripe
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import uuid
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from finalwishes.config.product_roles import ALL_LOOKUP_KEYS
from finalwishes.models.billing import Subscription

logger = logging.getLogger(__name__)

# Configure Stripe
stripe.api_key = os.getenv("STRIPE_SECRET_KEY")

PAID_PAYMENT_STATUSES = ("paid", "no_payment_required")


def stripe_value(obj: Any, *path: str, default: Any = None) -> Any:
    """Walk keys through Stripe objects or plain dicts; None/missing gives default"""
    current = obj
    for key in path:
        if current is None:
            return default
        try:
            current = current[key]
        except (KeyError, TypeError, IndexError):
            return default
    return default if current is None else current


def stripe_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def is_checkout_paid(session: Any) -> bool:
    """A checkout counts as paid once Stripe reports payment or completion"""
    return (
        stripe_value(session, "payment_status") in PAID_PAYMENT_STATUSES
        or stripe_value(session, "status") == "complete"
    )


def summarize_line_item(item: Any) -> Dict[str, Any]:
    price = stripe_value(item, "price")
    product = stripe_value(price, "product")
    name = stripe_value(product, "name") if not isinstance(product, str) else None
    return {
        "lookupKey": stripe_value(price, "lookup_key"),
        "name": name or stripe_value(item, "description") or "Purchase",
        "type": stripe_value(price, "type"),
        "interval": stripe_value(price, "recurring", "interval"),
    }


class BillingService:
    """Manages Stripe billing operations"""

    def _require_api_key(self) -> None:
        if not stripe.api_key:
            logger.error("STRIPE_SECRET_KEY not configured")
            raise HTTPException(status_code=500, detail="Stripe not configured")

    def find_active_price(self, lookup_key: str) -> Optional[Any]:
        """Active price (with expanded product) for a lookup key"""
        prices = stripe.Price.list(
            lookup_keys=[lookup_key],
            active=True,
            expand=["data.product"],
            limit=1,
        )
        data = stripe_value(prices, "data", default=[])
        return data[0] if data else None

    async def get_product(self, lookup_key: str) -> Dict[str, Any]:
        """Product card for a lookup key; 404 when Stripe has no active price for it"""
        if not lookup_key:
            raise HTTPException(status_code=400, detail="Missing lookupKey")
        self._require_api_key()

        try:
            price = self.find_active_price(lookup_key)
        except stripe.StripeError as e:
            logger.error(f"Failed to fetch product {lookup_key}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch product")

        if price is None:
            raise HTTPException(status_code=404, detail="Product not found")

        product = stripe_value(price, "product", default={})
        return {
            "id": stripe_value(product, "id"),
            "name": stripe_value(product, "name"),
            "description": stripe_value(product, "description", default=""),
            "images": stripe_value(product, "images", default=[]),
            "priceId": stripe_value(price, "id"),
            "amount": stripe_value(price, "unit_amount", default=0),
            "currency": stripe_value(price, "currency"),
            "interval": stripe_value(price, "recurring", "interval"),
            "intervalCount": stripe_value(price, "recurring", "interval_count"),
        }

    async def create_checkout_session(
        self,
        lookup_key: str,
        success_url: str,
        cancel_url: str,
        mode: str = "subscription",
        user_id: Optional[uuid.UUID] = None,
        customer_email: Optional[str] = None,
        allow_promotion_codes: bool = True,
        trial_days: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Create Stripe checkout session for a lookup key"""
        if not lookup_key:
            raise HTTPException(status_code=400, detail="Missing lookupKey")
        self._require_api_key()

        mode = "payment" if mode == "payment" else "subscription"

        try:
            price = self.find_active_price(lookup_key)
            if price is None:
                raise HTTPException(
                    status_code=400,
                    detail=f"No active price found for lookup key: {lookup_key}",
                )

            metadata = {"lookup_key": lookup_key}
            if user_id:
                metadata["user_id"] = str(user_id)

            params: Dict[str, Any] = {
                "mode": mode,
                "line_items": [{"price": stripe_value(price, "id"), "quantity": 1}],
                "success_url": success_url,
                "cancel_url": cancel_url,
                "allow_promotion_codes": allow_promotion_codes,
                "metadata": metadata,
            }
            if customer_email:
                params["customer_email"] = customer_email
            if mode == "subscription" and isinstance(trial_days, int):
                params["subscription_data"] = {"trial_period_days": trial_days}

            session = stripe.checkout.Session.create(**params)

            logger.info(f"Checkout session {stripe_value(session, 'id')} created for {lookup_key}")
            return {"url": stripe_value(session, "url"), "session_id": stripe_value(session, "id")}

        except stripe.StripeError as e:
            logger.error(f"Failed to create checkout session: {e}")
            raise HTTPException(status_code=500, detail="Checkout error")

    async def create_customer_portal_session(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        return_url: str,
    ) -> Dict[str, Any]:
        """Create customer portal session for the user's Stripe customer"""
        result = await db.execute(
            select(Subscription.stripe_customer_id).where(Subscription.user_id == user_id)
        )
        customer_id = result.scalar_one_or_none()
        if not customer_id:
            raise HTTPException(status_code=404, detail="No billing account found")

        self._require_api_key()
        try:
            session = stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=return_url,
            )
            return {"url": stripe_value(session, "url")}

        except stripe.StripeError as e:
            logger.error(f"Failed to create portal session: {e}")
            raise HTTPException(status_code=400, detail=f"Billing error: {str(e)}")

    async def verify_checkout_session(self, session_id: str) -> Dict[str, Any]:
        """Paid flag, purchased lookup keys and customer email for a finished checkout"""
        if not session_id or not isinstance(session_id, str):
            raise HTTPException(status_code=400, detail="sessionId is required")
        self._require_api_key()

        try:
            session = stripe.checkout.Session.retrieve(session_id)
            line_items = stripe.checkout.Session.list_line_items(
                session_id,
                limit=100,
                expand=["data.price.product"],
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to verify checkout session {session_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to verify checkout session")

        items = [
            summarize_line_item(item)
            for item in stripe_value(line_items, "data", default=[])
        ]

        return {
            "paid": is_checkout_paid(session),
            "items": [item for item in items if item["lookupKey"]],
            "customerEmail": (
                stripe_value(session, "customer_details", "email")
                or stripe_value(session, "customer_email")
            ),
        }

    async def validate_lookup_keys(self, lookup_keys: Optional[List[str]] = None) -> Dict[str, Any]:
        """Check that every known lookup key has exactly one active price in Stripe"""
        lookup_keys = list(lookup_keys or ALL_LOOKUP_KEYS)
        self._require_api_key()

        try:
            prices = stripe.Price.list(
                lookup_keys=lookup_keys,
                expand=["data.product"],
                limit=100,
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to list Stripe prices: {e}")
            raise HTTPException(status_code=500, detail="Failed to list prices")

        found, inactive = [], []
        seen: Dict[str, int] = {}
        for price in stripe_value(prices, "data", default=[]):
            key = stripe_value(price, "lookup_key")
            product = stripe_value(price, "product", default={})
            seen[key] = seen.get(key, 0) + 1
            active = bool(stripe_value(price, "active", default=False))
            product_active = bool(stripe_value(product, "active", default=False))
            found.append({
                "lookupKey": key,
                "priceId": stripe_value(price, "id"),
                "active": active,
                "productName": stripe_value(product, "name"),
                "productActive": product_active,
                "unitAmount": stripe_value(price, "unit_amount"),
                "currency": stripe_value(price, "currency"),
                "interval": stripe_value(price, "recurring", "interval"),
            })
            if not (active and product_active):
                inactive.append(key)

        return {
            "found": found,
            "missing": [key for key in lookup_keys if key not in seen],
            "inactive": inactive,
            "duplicates": [{"lookupKey": k, "count": n} for k, n in seen.items() if n > 1],
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


# Global billing service instance
billing_service = BillingService()
