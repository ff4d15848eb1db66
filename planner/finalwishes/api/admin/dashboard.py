"""
Admin Dashboard API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from datetime import datetime, timezone
from typing import Dict, Any
import logging
import uuid

from finalwishes.utils.database import get_db
from finalwishes.middleware.auth import require_admin
from finalwishes.models.user import User
from finalwishes.models.plan import Plan
from finalwishes.models.billing import Purchase, PurchaseStatus, Subscription, SubscriptionStatus
from finalwishes.models.support import Appointment
from finalwishes.services.billing import billing_service
from finalwishes.services.plan_aggregator import PlanAggregator, get_plan_aggregator

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


async def _count(db: AsyncSession, query) -> int:
    result = await db.execute(query)
    return result.scalar() or 0


@router.get("/stats")
async def admin_stats(db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    """Headline counts for users, plans, billing and bookings"""

    today = datetime.now(timezone.utc).date()

    total_users = await _count(db, select(func.count(User.id)))
    new_users_today = await _count(
        db, select(func.count(User.id)).where(func.date(User.created_at) == today)
    )
    total_plans = await _count(db, select(func.count(Plan.id)))

    result = await db.execute(
        select(Subscription.status, func.count(Subscription.id)).group_by(Subscription.status)
    )
    subscriptions = {status: count for status, count in result.all()}

    result = await db.execute(
        select(Purchase.product_lookup_key, func.count(Purchase.id))
        .where(Purchase.status == PurchaseStatus.COMPLETED.value)
        .group_by(Purchase.product_lookup_key)
    )
    purchases = {key: count for key, count in result.all()}

    pending_appointments = await _count(
        db, select(func.count(Appointment.id)).where(Appointment.status == "pending")
    )

    return {
        "users": {"total": total_users, "newToday": new_users_today},
        "plans": {"total": total_plans},
        "subscriptions": {
            "active": subscriptions.get(SubscriptionStatus.ACTIVE.value, 0),
            "byStatus": subscriptions,
        },
        "purchases": purchases,
        "appointments": {"pending": pending_appointments},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/plans/{plan_id}/counts")
async def plan_table_counts(
    plan_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    aggregator: PlanAggregator = Depends(get_plan_aggregator)
) -> Dict[str, Any]:
    """Row counts in every plan table, for debugging a user's plan"""
    result = await db.execute(select(Plan.id).where(Plan.id == plan_id))
    if result.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="Plan not found")

    counts = await aggregator.table_counts(plan_id)
    return {"planId": str(plan_id), "counts": counts, "total": sum(counts.values())}


@router.get("/stripe/validate")
async def validate_stripe_prices() -> Dict[str, Any]:
    """Check every known lookup key against the prices configured in Stripe"""
    report = await billing_service.validate_lookup_keys()
    if report["missing"] or report["inactive"] or report["duplicates"]:
        logger.warning(
            f"Stripe price check: missing={report['missing']} "
            f"inactive={report['inactive']} duplicates={report['duplicates']}"
        )
    return report
