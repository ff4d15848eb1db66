"""
Billing API endpoints
Stripe products by lookup key, checkout, customer portal and checkout verification
"""

import os
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
import logging

from finalwishes.utils.database import get_db
from finalwishes.models.user import User
from finalwishes.middleware.auth import get_current_user, require_auth
from finalwishes.services.billing import billing_service

logger = logging.getLogger(__name__)

router = APIRouter()

APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:5173")


# Pydantic models
class ProductRequest(BaseModel):
    lookup_key: str = Field(alias="lookupKey")


class CheckoutRequest(BaseModel):
    lookup_key: str = Field(alias="lookupKey")
    mode: str = "subscription"  # subscription or payment
    success_url: Optional[str] = Field(default=None, alias="successUrl")
    cancel_url: Optional[str] = Field(default=None, alias="cancelUrl")
    allow_promotion_codes: bool = Field(default=True, alias="allowPromotionCodes")
    trial_days: Optional[int] = Field(default=None, alias="trialDays")
    customer_email: Optional[str] = Field(default=None, alias="customerEmail")


class PortalRequest(BaseModel):
    return_url: Optional[str] = Field(default=None, alias="returnUrl")


class VerifyCheckoutRequest(BaseModel):
    session_id: str = Field(alias="sessionId")


@router.post("/product")
async def get_product(request: ProductRequest) -> Dict[str, Any]:
    return await billing_service.get_product(request.lookup_key)


@router.post("/checkout")
async def create_checkout_session(
    request: CheckoutRequest,
    user: Optional[User] = Depends(get_current_user)
) -> Dict[str, Any]:
    """Create Stripe checkout session; signed-in callers are tagged in metadata"""
    success_url = request.success_url or f"{APP_BASE_URL}/purchase-success?session_id={{CHECKOUT_SESSION_ID}}"
    cancel_url = request.cancel_url or f"{APP_BASE_URL}/pricing"

    return await billing_service.create_checkout_session(
        lookup_key=request.lookup_key,
        success_url=success_url,
        cancel_url=cancel_url,
        mode=request.mode,
        user_id=user.id if user else None,
        customer_email=request.customer_email or (user.email if user else None),
        allow_promotion_codes=request.allow_promotion_codes,
        trial_days=request.trial_days,
    )


@router.post("/portal")
async def create_portal_session(
    request: PortalRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    return await billing_service.create_customer_portal_session(
        db,
        user.id,
        return_url=request.return_url or f"{APP_BASE_URL}/preplandashboard",
    )


@router.post("/verify-checkout")
async def verify_checkout(request: VerifyCheckoutRequest) -> Dict[str, Any]:
    """Paid flag, purchased items and customer email for a finished checkout"""
    return await billing_service.verify_checkout_session(request.session_id)
