"""
Stripe Webhook API Endpoint
Receives Stripe events that record subscriptions and purchases
"""

from fastapi import APIRouter, Depends, Request, HTTPException
from fastapi.responses import JSONResponse
import logging
from typing import Dict, Any

from finalwishes.middleware.auth import require_admin
from finalwishes.models.user import User
from finalwishes.services.stripe_webhook import webhook_handler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/stripe/webhook")
async def stripe_webhook(request: Request) -> JSONResponse:
    """
    Handle Stripe webhook events.

    Signature problems are rejected with 400; anything that goes wrong
    while processing a verified event is still acknowledged with 200 so
    Stripe does not keep redelivering it.
    """
    try:
        payload = await request.body()
        sig_header = request.headers.get('stripe-signature')

        if not sig_header:
            logger.error("Missing Stripe signature header")
            raise HTTPException(status_code=400, detail="Missing signature")

        event = webhook_handler.verify_webhook_signature(payload, sig_header)
        result = await webhook_handler.handle_event(event)

        logger.info(f"Webhook processed: {event['type']} - {result['status']}")

        return JSONResponse(
            status_code=200,
            content={
                "received": True,
                "event_type": event['type'],
                "event_id": event.get('id'),
                "result": result
            }
        )

    except HTTPException:
        raise

    except Exception as e:
        logger.error(f"Webhook processing error: {e}", exc_info=True)
        return JSONResponse(
            status_code=200,
            content={
                "received": True,
                "error": str(e),
                "status": "processing_failed"
            }
        )


@router.post("/stripe/webhook/simulate")
async def simulate_webhook_event(
    event_data: Dict[str, Any],
    admin: User = Depends(require_admin)
):
    """Run an event through the handlers without a Stripe signature (admin only)"""
    if not event_data.get("type"):
        raise HTTPException(status_code=400, detail="Event type is required")

    result = await webhook_handler.handle_event(event_data)
    return {
        "status": "simulated",
        "event_type": event_data.get('type'),
        "result": result
    }
