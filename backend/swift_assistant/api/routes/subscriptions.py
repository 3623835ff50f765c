"""
Subscription API Routes

Subscription status, Stripe checkout, billing portal and manual resync.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from swift_assistant.api.dependencies import (
    get_current_user,
    get_entitlement_store,
    get_feedback_store,
    get_lifecycle_manager,
    get_stripe,
    get_usage_meter,
    request_origin,
)
from swift_assistant.config.settings import get_settings
from swift_assistant.domain.interaction import CurrentUser
from swift_assistant.domain.subscription import (
    CheckoutResponse,
    PortalResponse,
    SubscriptionStatusResponse,
    SyncResponse,
    should_show_feedback,
)
from swift_assistant.infrastructure.db.repositories import EntitlementRepository, FeedbackRepository
from swift_assistant.infrastructure.exceptions import (
    ConfigurationError,
    NotFoundError,
    StoreError,
)
from swift_assistant.infrastructure.payments.stripe_service import StripeService
from swift_assistant.infrastructure.services.subscription_lifecycle import (
    SubscriptionLifecycleManager,
)
from swift_assistant.infrastructure.services.usage_metering import UsageMeter


logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Subscription Status
# =============================================================================

@router.get("/subscription")
async def get_subscription_status(
    user: CurrentUser = Depends(get_current_user),
    lifecycle: SubscriptionLifecycleManager = Depends(get_lifecycle_manager),
    meter: UsageMeter = Depends(get_usage_meter),
    feedback_store: FeedbackRepository = Depends(get_feedback_store),
):
    """
    Get the current user's subscription status and feedback prompt state.

    Display-only: every read here falls back to a safe default.
    """
    settings = get_settings()

    info = await lifecycle.get_subscription_info(user.id)
    interaction_count = await meter.total_interactions(user.id)

    try:
        has_feedback = await feedback_store.exists_for_user(user.id)
    except (StoreError, ConfigurationError) as e:
        logger.error(f"Failed to check feedback for user {user.id}: {e}")
        has_feedback = False

    response = SubscriptionStatusResponse(
        is_subscribed=info.is_subscribed,
        status=info.status,
        subscription_start_date=info.subscription_start_date,
        subscription_end_date=info.subscription_end_date,
        interaction_count=interaction_count,
        has_feedback=has_feedback,
        should_show_feedback=should_show_feedback(
            info.is_subscribed,
            interaction_count,
            has_feedback,
            settings.feedback_prompt_min_interactions,
            settings.feedback_prompt_max_interactions,
        ),
    )
    return response.model_dump(mode="json", by_alias=True)


# =============================================================================
# Checkout & Portal
# =============================================================================

@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout_session(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    stripe_service: StripeService = Depends(get_stripe),
    store: EntitlementRepository = Depends(get_entitlement_store),
):
    """
    Create a Stripe Checkout session for the monthly plan.

    The session is pre-filled with the user's email and tagged with their
    id so the completed-checkout webhook can link the customer.
    """
    if not user.email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )

    await store.upsert_user_stub(user.id, user.email)

    origin = request_origin(request)
    session = await stripe_service.create_checkout_session(
        email=user.email,
        user_id=user.id,
        success_url=f"{origin}?subscribed=true",
        cancel_url=f"{origin}?cancelled=true",
    )

    return CheckoutResponse(url=session.url)


@router.post("/portal", response_model=PortalResponse)
async def create_portal_session(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    stripe_service: StripeService = Depends(get_stripe),
    store: EntitlementRepository = Depends(get_entitlement_store),
):
    """Create a Billing Portal session for the user's linked customer."""
    entitlement = await store.get_entitlement(user.id)
    if entitlement is None or not entitlement.customer_id:
        raise NotFoundError(
            "No Stripe customer found. Please subscribe first.",
            reason="no_customer",
        )

    session = await stripe_service.create_portal_session(
        customer_id=entitlement.customer_id,
        return_url=request_origin(request),
    )

    return PortalResponse(url=session.url)


# =============================================================================
# Manual Sync
# =============================================================================

@router.post("/subscription/sync", response_model=SyncResponse)
async def sync_subscription(
    user: CurrentUser = Depends(get_current_user),
    lifecycle: SubscriptionLifecycleManager = Depends(get_lifecycle_manager),
):
    """
    Re-query Stripe for the user's subscription.

    Covers the window where checkout succeeded but the webhook has not
    arrived yet.
    """
    if not user.email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )

    await lifecycle.sync_for_user(user.id, user.email)
    return SyncResponse(success=True, message="Subscription synced successfully!")
