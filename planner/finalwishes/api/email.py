"""
Email API endpoints
Plan delivery, tribute song orders and contact requests through Brevo
"""

import base64
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, EmailStr, Field
from typing import Any, Dict, Optional
import logging

from finalwishes.utils.database import get_db
from finalwishes.utils.email_brevo import email_service
from finalwishes.models.user import User
from finalwishes.middleware.auth import require_auth
from finalwishes.services.plan_aggregator import PlanAggregator, get_plan_aggregator
from finalwishes.services.plan_pdf import plan_pdf_generator
from finalwishes.services.plan_resolver import resolve_active_plan
from finalwishes.services.unified_plan import build_unified_from_view

logger = logging.getLogger(__name__)

router = APIRouter()


class PlanEmailRequest(BaseModel):
    to: EmailStr
    pdf_base64: Optional[str] = Field(default=None, alias="pdfBase64")
    prepared_by: Optional[str] = Field(default=None, alias="preparedBy")


class SongOrderRequest(BaseModel):
    order_id: str = Field(alias="orderId")
    package_type: str = Field(alias="packageType")
    request_data: Dict[str, Any] = Field(default_factory=dict, alias="requestData")
    customer_email: Optional[EmailStr] = Field(default=None, alias="customerEmail")


class ContactRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    message: str = Field(min_length=1)
    kind: str = "contact"  # contact or suggestion


@router.post("/plan")
async def email_plan(
    request: PlanEmailRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    aggregator: PlanAggregator = Depends(get_plan_aggregator)
) -> Dict[str, Any]:
    """Email the plan PDF; rendered from the stored plan when none is supplied"""
    pdf_base64 = request.pdf_base64
    if not pdf_base64:
        active = await resolve_active_plan(db, user.id)
        if not active.found:
            raise HTTPException(status_code=404, detail="No plan found")
        view = await aggregator.fetch_plan_data(active.plan_id)
        pdf = plan_pdf_generator.generate(
            build_unified_from_view(view),
            prepared_for=(view.plan or {}).get("prepared_for") or user.full_name,
        )
        pdf_base64 = base64.b64encode(pdf).decode("ascii")

    sent = await email_service.send_plan_email(
        to_email=request.to,
        pdf_base64=pdf_base64,
        prepared_by=request.prepared_by or user.full_name or user.email,
    )
    if not sent:
        raise HTTPException(status_code=502, detail="Failed to send email")
    return {"sent": True}


@router.post("/song-order")
async def email_song_order(request: SongOrderRequest) -> Dict[str, Any]:
    sent = await email_service.send_song_order_email(
        order_id=request.order_id,
        package_type=request.package_type,
        request_data=request.request_data,
        customer_email=request.customer_email,
    )
    if not sent:
        raise HTTPException(status_code=502, detail="Failed to send song order")
    return {"sent": True}


@router.post("/contact")
async def email_contact(request: ContactRequest) -> Dict[str, Any]:
    if request.kind not in ("contact", "suggestion"):
        raise HTTPException(status_code=400, detail="kind must be contact or suggestion")

    sent = await email_service.send_contact_email(
        name=request.name,
        email=request.email,
        message=request.message,
        kind=request.kind,
    )
    if not sent:
        raise HTTPException(status_code=502, detail="Failed to send message")
    return {"sent": True}
