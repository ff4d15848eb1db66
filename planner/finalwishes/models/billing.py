"""
Billing models - Stripe subscriptions and one-time purchases per user
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Integer, UniqueConstraint, Uuid
from sqlalchemy.sql import func
from finalwishes.utils.database import Base, utcnow
import uuid
import enum


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"


class PurchaseStatus(str, enum.Enum):
    COMPLETED = "completed"
    REFUNDED = "refunded"


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)

    stripe_customer_id = Column(String(100), index=True)
    stripe_subscription_id = Column(String(100), index=True)
    lookup_key = Column(String(100))
    plan_type = Column(String(50), nullable=False, default="free")
    status = Column(String(50), nullable=False, default=SubscriptionStatus.INCOMPLETE.value)
    current_period_start = Column(DateTime(timezone=True))
    current_period_end = Column(DateTime(timezone=True))
    cancel_at_period_end = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Subscription(user_id={self.user_id}, plan={self.plan_type}, status={self.status})>"


class Purchase(Base):
    __tablename__ = "purchases"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_lookup_key = Column(String(100), nullable=False)
    status = Column(String(50), nullable=False, default=PurchaseStatus.COMPLETED.value)
    amount = Column(Integer)  # cents
    stripe_payment_intent_id = Column(String(100))
    stripe_checkout_session_id = Column(String(100))

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "product_lookup_key", name="uq_purchases_user_product"),
    )

    def __repr__(self):
        return f"<Purchase(user_id={self.user_id}, product={self.product_lookup_key})>"
