"""
Access API endpoints
Entitlement flags derived from roles, subscription and purchases
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict

from finalwishes.utils.database import get_db
from finalwishes.models.user import User
from finalwishes.middleware.auth import require_auth
from finalwishes.services.entitlements import entitlement_resolver

router = APIRouter()


@router.get("")
async def get_access(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    entitlement = await entitlement_resolver.resolve(db, user.id)
    return entitlement.access_flags()


@router.get("/subscription")
async def get_subscription_access(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    """Subscription-gate flags; admins pass as master accounts"""
    entitlement = await entitlement_resolver.resolve(db, user.id)
    return {
        "hasActiveSubscription": entitlement.has_active_subscription,
        "isMasterAccount": entitlement.is_master_account,
        "subscriptionStatus": entitlement.subscription_status,
    }
