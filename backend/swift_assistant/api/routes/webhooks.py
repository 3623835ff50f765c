"""
Stripe Webhook Handler

Verifies the Stripe signature, then hands the event to the subscription
lifecycle manager.

Responses:
- 400: missing or invalid signature (nothing is applied)
- 200: event applied, or an unhandled type acknowledged and ignored
- 500: the entitlement store failed, so Stripe retries the delivery
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from swift_assistant.api.dependencies import get_lifecycle_manager, get_stripe
from swift_assistant.infrastructure.exceptions import SignatureInvalid
from swift_assistant.infrastructure.payments.stripe_service import StripeService
from swift_assistant.infrastructure.services.subscription_lifecycle import (
    SubscriptionLifecycleManager,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    stripe_service: StripeService = Depends(get_stripe),
    lifecycle: SubscriptionLifecycleManager = Depends(get_lifecycle_manager),
):
    """
    Handle Stripe webhook events.

    Returns 200 OK to acknowledge receipt (Stripe retries on 5xx).
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        logger.error("Missing Stripe signature")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe signature"
        )

    try:
        event = stripe_service.verify_webhook_signature(payload, signature)
    except SignatureInvalid as e:
        logger.error(f"Webhook signature verification failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature"
        )

    event_type = event.get("type")
    logger.info(f"Processing webhook event: {event_type} ({event.get('id')})")

    try:
        handled = await lifecycle.handle_event(event)
    except Exception as e:
        logger.error(f"Error processing webhook {event_type}: {e}")
        raise

    return {"status": "success" if handled else "ignored"}
