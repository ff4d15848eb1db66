"""
Stripe Webhook Handler
Records subscriptions and one-time purchases from Stripe events
"""

import json
import os
import stripe
import logging
from typing import Any, Callable, Dict, Optional
import uuid
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from finalwishes.config.product_roles import get_plan_type, is_subscription_key, PRODUCT_ROLE_MAP
from finalwishes.models.billing import Purchase, PurchaseStatus, Subscription, SubscriptionStatus
from finalwishes.models.user import User
from finalwishes.services.billing import stripe_timestamp, stripe_value
from finalwishes.utils.database import get_async_session, utcnow

logger = logging.getLogger(__name__)

# Configure Stripe
stripe.api_key = os.getenv("STRIPE_SECRET_KEY")


class StripeWebhookHandler:
    """Handles Stripe webhook events"""

    def __init__(self, session_factory: Callable = get_async_session):
        self.session_factory = session_factory
        self.webhook_secret = os.getenv("STRIPE_WEBHOOK_SECRET")
        if not self.webhook_secret:
            logger.warning("STRIPE_WEBHOOK_SECRET not configured")

    def verify_webhook_signature(self, payload: bytes, sig_header: str) -> Dict[str, Any]:
        """Verify webhook signature and return the event as a plain dict"""
        if not self.webhook_secret:
            raise HTTPException(status_code=500, detail="Webhook secret not configured")
        try:
            stripe.Webhook.construct_event(payload, sig_header, self.webhook_secret)
        except ValueError as e:
            logger.error(f"Invalid payload: {e}")
            raise HTTPException(status_code=400, detail="Invalid payload")
        except stripe.SignatureVerificationError as e:
            logger.error(f"Invalid signature: {e}")
            raise HTTPException(status_code=400, detail="Invalid signature")
        return json.loads(payload)

    # Stripe API reads, kept separate so tests can replace them
    def _list_line_items(self, session_id: str) -> Any:
        return stripe.checkout.Session.list_line_items(session_id, limit=100, expand=["data.price"])

    def _retrieve_subscription(self, subscription_id: str) -> Any:
        return stripe.Subscription.retrieve(subscription_id)

    async def handle_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """Route webhook events to appropriate handlers"""

        event_type = event['type']
        logger.info(f"Processing Stripe event: {event_type}")

        try:
            if event_type == 'checkout.session.completed':
                return await self.handle_checkout_completed(event)

            elif event_type == 'invoice.paid':
                return await self.handle_invoice_paid(event)

            elif event_type == 'customer.subscription.updated':
                return await self.handle_subscription_updated(event)

            elif event_type == 'customer.subscription.deleted':
                return await self.handle_subscription_deleted(event)

            elif event_type == 'invoice.payment_failed':
                return await self.handle_payment_failed(event)

            elif event_type == 'checkout.session.expired':
                session = event['data']['object']
                logger.info(f"Checkout session {session.get('id')} expired")
                return {"status": "success", "action": "checkout_expired"}

            else:
                logger.info(f"Unhandled event type: {event_type}")
                return {"status": "ignored", "event_type": event_type}

        except Exception as e:
            logger.error(f"Error handling event {event_type}: {e}", exc_info=True)
            return {"status": "error", "message": str(e)}

    @staticmethod
    def _subscription_lookup_key(subscription: Any) -> Optional[str]:
        for item in stripe_value(subscription, "items", "data", default=[]):
            key = stripe_value(item, "price", "lookup_key")
            if key in PRODUCT_ROLE_MAP:
                return key
        return None

    @staticmethod
    def _period(subscription: Any, name: str):
        # Newer API versions moved billing periods onto the subscription items
        value = stripe_value(subscription, name)
        if value is None:
            items = stripe_value(subscription, "items", "data", default=[])
            value = stripe_value(items[0], name) if items else None
        return stripe_timestamp(value)

    async def _resolve_user_id(self, db, session: Dict[str, Any]) -> Optional[uuid.UUID]:
        raw_user_id = (session.get("metadata") or {}).get("user_id")
        if raw_user_id:
            try:
                return uuid.UUID(str(raw_user_id))
            except ValueError:
                logger.warning(f"Ignoring malformed user_id metadata: {raw_user_id}")

        email = (session.get("customer_details") or {}).get("email") or session.get("customer_email")
        if email:
            result = await db.execute(select(User.id).where(User.email == email.lower()))
            return result.scalar_one_or_none()
        return None

    async def handle_checkout_completed(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """Record the subscription or purchase a completed checkout paid for"""
        session = event['data']['object']

        async with self.session_factory() as db:
            user_id = await self._resolve_user_id(db, session)
            if not user_id:
                logger.warning(f"No user found for checkout session {session.get('id')}")
                return {"status": "warning", "message": "User not found"}

            lookup_keys = []
            metadata_key = (session.get("metadata") or {}).get("lookup_key")
            if metadata_key:
                lookup_keys.append(metadata_key)
            line_items = self._list_line_items(session["id"])
            for item in stripe_value(line_items, "data", default=[]):
                key = stripe_value(item, "price", "lookup_key")
                if key and key not in lookup_keys:
                    lookup_keys.append(key)

            known_keys = [key for key in lookup_keys if key in PRODUCT_ROLE_MAP]
            if not known_keys:
                logger.warning(f"Checkout {session.get('id')} has no known lookup keys: {lookup_keys}")
                return {"status": "ignored", "message": "No known products"}

            if session.get("mode") == "subscription" and session.get("subscription"):
                subscription = self._retrieve_subscription(session["subscription"])
                primary_key = next((k for k in known_keys if is_subscription_key(k)), known_keys[0])
                await self._upsert_subscription(db, user_id, subscription, primary_key)
                await db.commit()
                logger.info(f"Recorded subscription {primary_key} for user {user_id}")
                return {"status": "success", "action": "subscription_recorded", "user_id": str(user_id)}

            for key in known_keys:
                await self._upsert_purchase(db, user_id, key, session)
            await db.commit()
            logger.info(f"Recorded purchases {known_keys} for user {user_id}")
            return {"status": "success", "action": "purchase_recorded", "user_id": str(user_id)}

    async def _upsert_subscription(self, db, user_id: uuid.UUID, subscription: Any, lookup_key: str) -> Subscription:
        result = await db.execute(select(Subscription).where(Subscription.user_id == user_id))
        row = result.scalar_one_or_none()
        if row is None:
            row = Subscription(user_id=user_id)
            db.add(row)

        row.stripe_customer_id = stripe_value(subscription, "customer")
        row.stripe_subscription_id = stripe_value(subscription, "id")
        row.lookup_key = lookup_key
        row.plan_type = get_plan_type(lookup_key)
        row.status = SubscriptionStatus.ACTIVE.value
        row.current_period_start = self._period(subscription, "current_period_start")
        row.current_period_end = self._period(subscription, "current_period_end")
        row.cancel_at_period_end = bool(stripe_value(subscription, "cancel_at_period_end", default=False))
        row.updated_at = utcnow()
        return row

    async def _upsert_purchase(self, db, user_id: uuid.UUID, lookup_key: str, session: Dict[str, Any]) -> None:
        """One purchase row per (user, product); repeat checkouts refresh it"""
        result = await db.execute(
            select(Purchase).where(Purchase.user_id == user_id, Purchase.product_lookup_key == lookup_key)
        )
        purchase = result.scalar_one_or_none()
        if purchase is None:
            purchase = Purchase(user_id=user_id, product_lookup_key=lookup_key)
            db.add(purchase)

        purchase.status = PurchaseStatus.COMPLETED.value
        purchase.amount = session.get("amount_total") or 0
        purchase.stripe_payment_intent_id = session.get("payment_intent")
        purchase.stripe_checkout_session_id = session.get("id")
        purchase.updated_at = utcnow()
        try:
            await db.flush()
        except IntegrityError:
            # Concurrent delivery inserted the same purchase
            await db.rollback()
            logger.info(f"Purchase {lookup_key} for {user_id} already recorded")

    async def _find_subscription(self, db, **criteria) -> Optional[Subscription]:
        query = select(Subscription)
        for column, value in criteria.items():
            query = query.where(getattr(Subscription, column) == value)
        result = await db.execute(query)
        return result.scalars().first()

    async def handle_invoice_paid(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """Renewal paid: mark active and refresh the billing period"""
        invoice = event['data']['object']
        subscription_id = invoice.get("subscription")
        if not subscription_id:
            return {"status": "ignored", "message": "Invoice has no subscription"}

        async with self.session_factory() as db:
            row = await self._find_subscription(db, stripe_customer_id=invoice.get("customer"))
            if row is None:
                logger.warning(f"No subscription found for customer {invoice.get('customer')}")
                return {"status": "warning", "message": "Subscription not found"}

            subscription = self._retrieve_subscription(subscription_id)
            lookup_key = self._subscription_lookup_key(subscription) or row.lookup_key
            await self._upsert_subscription(db, row.user_id, subscription, lookup_key)
            await db.commit()
            return {"status": "success", "action": "invoice_paid", "user_id": str(row.user_id)}

    async def handle_subscription_updated(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """Handle subscription changes (upgrades, downgrades, status)"""
        subscription = event['data']['object']

        async with self.session_factory() as db:
            row = await self._find_subscription(db, stripe_subscription_id=subscription["id"])
            if row is None:
                logger.warning(f"No subscription found for {subscription['id']}")
                return {"status": "warning", "message": "Subscription not found"}

            lookup_key = self._subscription_lookup_key(subscription) or row.lookup_key
            row.lookup_key = lookup_key
            row.plan_type = get_plan_type(lookup_key)
            row.status = subscription.get("status") or row.status
            row.current_period_start = self._period(subscription, "current_period_start") or row.current_period_start
            row.current_period_end = self._period(subscription, "current_period_end") or row.current_period_end
            row.cancel_at_period_end = bool(subscription.get("cancel_at_period_end", False))
            row.updated_at = utcnow()
            await db.commit()
            return {"status": "success", "action": "subscription_updated", "user_id": str(row.user_id)}

    async def handle_subscription_deleted(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """Cancel the subscription; one-time purchases keep granting their roles"""
        subscription = event['data']['object']

        async with self.session_factory() as db:
            row = await self._find_subscription(db, stripe_subscription_id=subscription["id"])
            if row is None:
                logger.warning(f"No subscription found for {subscription['id']}")
                return {"status": "warning", "message": "Subscription not found"}

            row.status = SubscriptionStatus.CANCELED.value
            row.updated_at = utcnow()
            await db.commit()
            logger.info(f"Subscription {subscription['id']} cancelled for user {row.user_id}")
            return {"status": "success", "action": "subscription_cancelled", "user_id": str(row.user_id)}

    async def handle_payment_failed(self, event: Dict[str, Any]) -> Dict[str, Any]:
        invoice = event['data']['object']
        subscription_id = invoice.get("subscription")
        if not subscription_id:
            return {"status": "ignored", "message": "Invoice has no subscription"}

        async with self.session_factory() as db:
            row = await self._find_subscription(db, stripe_subscription_id=subscription_id)
            if row is None:
                return {"status": "warning", "message": "Subscription not found"}

            row.status = SubscriptionStatus.PAST_DUE.value
            row.updated_at = utcnow()
            await db.commit()
            logger.warning(f"Payment failed for subscription {subscription_id}, marked past_due")
            return {"status": "success", "action": "payment_failed", "user_id": str(row.user_id)}


# Global webhook handler instance
webhook_handler = StripeWebhookHandler()
