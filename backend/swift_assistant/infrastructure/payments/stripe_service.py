"""
Stripe Payment Service

Infrastructure service for Stripe payment processing.
Handles checkout sessions, the billing portal, subscription lookups and
webhook verification for the single monthly plan. Lookups and verified
events are returned as plain dicts.
"""

import logging
from typing import Any, Dict, Optional

import stripe
from stripe import StripeError

from swift_assistant.config.settings import get_settings
from swift_assistant.infrastructure.exceptions import (
    ConfigurationError,
    DownstreamUnavailable,
    SignatureInvalid,
)


logger = logging.getLogger(__name__)


class StripeServiceError(DownstreamUnavailable):
    """Raised when a Stripe API call fails."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message, service="stripe", original_error=original_error)


class StripeService:
    """
    Stripe payment processing service.

    The SDK is synchronous; calls are made inline from async methods.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        price_id: Optional[str] = None,
    ):
        """Initialize Stripe with API key from settings."""
        settings = get_settings()
        self._api_key = api_key or settings.stripe_secret_key
        self._webhook_secret = webhook_secret or settings.stripe_webhook_secret
        self._price_id = price_id or settings.stripe_price_id

        if self._api_key:
            stripe.api_key = self._api_key

    def _require_api_key(self) -> None:
        if not self._api_key:
            raise ConfigurationError(
                "Stripe is not configured",
                missing_keys=["STRIPE_SECRET_KEY"],
            )

    # =========================================================================
    # Checkout Session
    # =========================================================================

    async def create_checkout_session(
        self,
        email: Optional[str],
        user_id: str,
        success_url: str,
        cancel_url: str,
    ) -> stripe.checkout.Session:
        """
        Create a hosted Checkout Session for the monthly subscription.

        The user id travels in session metadata so the completed-checkout
        webhook can link the new customer back to the user.

        Args:
            email: Pre-filled customer email
            user_id: Internal user ID for metadata
            success_url: Redirect after successful payment
            cancel_url: Redirect after cancelled payment

        Returns:
            stripe.checkout.Session with checkout URL
        """
        self._require_api_key()
        if not self._price_id:
            raise ConfigurationError("Stripe price is not configured", missing_keys=["STRIPE_PRICE_ID"])

        try:
            session = stripe.checkout.Session.create(
                mode="subscription",
                payment_method_types=["card"],
                line_items=[
                    {
                        "price": self._price_id,
                        "quantity": 1,
                    }
                ],
                customer_email=email,
                metadata={"userId": user_id},
                success_url=success_url,
                cancel_url=cancel_url,
            )

            logger.info(f"Created checkout session {session.id} for user {user_id}")
            return session

        except StripeError as e:
            logger.error(f"Failed to create checkout session: {e}")
            raise StripeServiceError(f"Failed to create checkout: {e.user_message}", e)

    # =========================================================================
    # Customer Portal
    # =========================================================================

    async def create_portal_session(
        self,
        customer_id: str,
        return_url: str,
    ) -> stripe.billing_portal.Session:
        """
        Create a Billing Portal session for self-service management.

        Args:
            customer_id: Stripe customer ID
            return_url: URL to return to after portal session

        Returns:
            stripe.billing_portal.Session with portal URL
        """
        self._require_api_key()
        try:
            session = stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=return_url,
            )

            logger.info(f"Created portal session for customer {customer_id}")
            return session

        except StripeError as e:
            logger.error(f"Failed to create portal session: {e}")
            raise StripeServiceError(f"Failed to create portal: {e.user_message}", e)

    # =========================================================================
    # Customer & Subscription Queries
    # =========================================================================

    async def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """
        Retrieve a subscription by ID.

        Raises:
            StripeServiceError so the webhook is answered 500 and retried
        """
        self._require_api_key()
        try:
            subscription = stripe.Subscription.retrieve(subscription_id)
        except StripeError as e:
            logger.error(f"Failed to retrieve subscription {subscription_id}: {e}")
            raise StripeServiceError(f"Failed to retrieve subscription: {e.user_message}", e)

        return subscription.to_dict()

    async def find_customer_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """First Stripe customer registered with ``email``, if any."""
        self._require_api_key()
        try:
            customers = stripe.Customer.list(email=email, limit=1)
        except StripeError as e:
            logger.error(f"Failed to list customers for {email}: {e}")
            raise StripeServiceError(f"Failed to look up customer: {e.user_message}", e)

        if not customers.data:
            return None
        return customers.data[0].to_dict()

    async def find_active_subscription(self, customer_id: str) -> Optional[Dict[str, Any]]:
        """First active subscription for the customer, if any."""
        self._require_api_key()
        try:
            subscriptions = stripe.Subscription.list(
                customer=customer_id,
                status="active",
                limit=1,
            )
        except StripeError as e:
            logger.error(f"Failed to list subscriptions for {customer_id}: {e}")
            raise StripeServiceError(f"Failed to look up subscription: {e.user_message}", e)

        if not subscriptions.data:
            return None
        return subscriptions.data[0].to_dict()

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook_signature(
        self,
        payload: bytes,
        signature: str,
    ) -> Dict[str, Any]:
        """
        Verify webhook signature and construct event.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header

        Returns:
            The verified event as a dict

        Raises:
            SignatureInvalid if the payload or signature cannot be verified
        """
        if not self._webhook_secret:
            raise ConfigurationError(
                "Stripe webhook secret is not configured",
                missing_keys=["STRIPE_WEBHOOK_SECRET"],
            )

        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                self._webhook_secret,
            )
        except ValueError as e:
            raise SignatureInvalid(f"Invalid payload: {e}", original_error=e)
        except stripe.SignatureVerificationError as e:
            raise SignatureInvalid(f"Invalid signature: {e}", original_error=e)

        return event.to_dict()


# =============================================================================
# Singleton Instance (Dependency Injection Ready)
# =============================================================================

_stripe_service_instance: Optional[StripeService] = None


def get_stripe_service() -> StripeService:
    """Get or create Stripe service singleton."""
    global _stripe_service_instance

    if _stripe_service_instance is None:
        _stripe_service_instance = StripeService()

    return _stripe_service_instance
