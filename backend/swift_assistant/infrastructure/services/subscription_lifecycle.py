"""
Subscription Lifecycle Manager

Applies Stripe billing events, and user-initiated resyncs, to the
entitlement store.

Handled events:
- checkout.session.completed: link the customer and activate
- customer.subscription.updated: refresh dates (active) or mark past_due
- customer.subscription.deleted: mark cancelled
- charge.refunded: mark cancelled and record the refund
- invoice.payment_failed: mark past_due and alert the operator

Signature verification happens before any of this, in the webhook route.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from swift_assistant.config.settings import settings
from swift_assistant.domain.interfaces import AnalyticsSink, EntitlementStore
from swift_assistant.domain.subscription import (
    AnalyticsEventType,
    SubscriptionInfo,
    SubscriptionStatus,
    SyncResult,
    approximate_period_end,
)
from swift_assistant.infrastructure.exceptions import (
    ClientInputInvalid,
    ConfigurationError,
    NotFoundError,
    StoreError,
)
from swift_assistant.infrastructure.notifications.notifier import TelegramNotifier
from swift_assistant.infrastructure.payments.stripe_service import StripeService


logger = logging.getLogger(__name__)


def _from_timestamp(value: Optional[int]) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(value, tz=timezone.utc)


class SubscriptionLifecycleManager:
    """
    State machine over ``inactive / active / cancelled / past_due``.

    Activation is idempotent in end state; the ``subscription_created``
    analytics event is emitted at least once per activation call.
    Store failures propagate so the webhook is retried.
    """

    def __init__(
        self,
        store: EntitlementStore,
        stripe_service: StripeService,
        analytics: AnalyticsSink,
        notifier: Optional[TelegramNotifier] = None,
        price_cents: Optional[int] = None,
    ):
        self._store = store
        self._stripe = stripe_service
        self._analytics = analytics
        self._notifier = notifier
        self._price_cents = price_cents if price_cents is not None else settings.subscription_price_cents

    # =========================================================================
    # Webhook Dispatch
    # =========================================================================

    async def handle_event(self, event: Mapping[str, Any]) -> bool:
        """
        Apply one verified Stripe event.

        Returns:
            True when the event changed (or re-applied) state, False when it
            was ignored
        """
        event_type = event.get("type")
        data = event["data"]["object"]

        if event_type == "checkout.session.completed":
            return await self._handle_checkout_completed(data)

        elif event_type == "customer.subscription.updated":
            return await self._handle_subscription_updated(data)

        elif event_type == "customer.subscription.deleted":
            await self.deactivate(data.get("customer"), "cancelled")
            logger.info(f"Subscription cancelled for customer {data.get('customer')}")
            return True

        elif event_type == "charge.refunded":
            return await self._handle_charge_refunded(data)

        elif event_type == "invoice.payment_failed":
            return await self._handle_payment_failed(data)

        logger.info(f"Unhandled webhook event: {event_type}")
        return False

    async def _handle_checkout_completed(self, session: Mapping[str, Any]) -> bool:
        if session.get("mode") != "subscription":
            logger.info(f"Ignoring checkout session in {session.get('mode')} mode")
            return False

        customer_id = session.get("customer")
        subscription_id = session.get("subscription")
        user_id = (session.get("metadata") or {}).get("userId")
        email = session.get("customer_email")

        if not customer_id or not subscription_id:
            raise ClientInputInvalid("Checkout session has no customer or subscription")

        if user_id:
            await self._store.link_customer_by_user_id(user_id, customer_id)
        elif email:
            await self._store.link_customer_by_email(email, customer_id)
        else:
            logger.error("Cannot link customer: missing userId and email")
            raise ClientInputInvalid("Missing userId or email")

        subscription = await self._stripe.retrieve_subscription(subscription_id)
        await self.activate(
            customer_id,
            subscription.get("id") or subscription_id,
            _from_timestamp(subscription.get("start_date")),
        )

        logger.info(f"Subscription activated for user {user_id or email}")
        return True

    async def _handle_subscription_updated(self, subscription: Mapping[str, Any]) -> bool:
        customer_id = subscription.get("customer")
        status = subscription.get("status")

        if status == "active":
            start = _from_timestamp(subscription.get("start_date"))
            await self._store.set_subscription_status(
                customer_id,
                SubscriptionStatus.ACTIVE,
                stripe_subscription_id=subscription.get("id"),
                subscription_start_date=start,
                subscription_end_date=approximate_period_end(start),
            )
        elif status == "past_due":
            await self.deactivate(customer_id, "past_due")
        else:
            logger.info(f"Subscription for customer {customer_id} is {status}, no change")
            return False

        logger.info(f"Subscription updated for customer {customer_id}: {status}")
        return True

    async def _handle_charge_refunded(self, charge: Mapping[str, Any]) -> bool:
        customer_id = charge.get("customer")
        if not customer_id:
            logger.info("Refund without a customer, ignoring")
            return False

        user_id = await self.deactivate(customer_id, "cancelled")
        await self._analytics.track(
            AnalyticsEventType.REFUND,
            user_id,
            {
                "stripeCustomerId": customer_id,
                "amount": charge.get("amount_refunded"),
            },
        )

        logger.info(f"Refund processed for customer {customer_id}")
        return True

    async def _handle_payment_failed(self, invoice: Mapping[str, Any]) -> bool:
        customer_id = invoice.get("customer")
        user_id = await self.deactivate(customer_id, "past_due")

        if self._notifier is not None:
            await self._notifier.notify_payment_failed(customer_id, user_id)

        logger.info(f"Payment failed for customer {customer_id}")
        return True

    # =========================================================================
    # Transitions
    # =========================================================================

    async def activate(
        self,
        customer_id: str,
        subscription_id: str,
        start: datetime,
    ) -> Optional[str]:
        """
        Mark the customer's user active from ``start`` for one period.

        Returns:
            The activated user id, or None when no user is linked yet
        """
        end = approximate_period_end(start)
        user_id = await self._store.set_subscription_active(customer_id, subscription_id, start, end)

        if user_id:
            await self._analytics.track(
                AnalyticsEventType.SUBSCRIPTION_CREATED,
                user_id,
                {"stripeSubscriptionId": subscription_id, "amount": self._price_cents},
            )

        return user_id

    async def deactivate(self, customer_id: str, reason: str = "cancelled") -> Optional[str]:
        """Move the customer's user to past_due (for ``reason="past_due"``) or cancelled."""
        status = SubscriptionStatus.PAST_DUE if reason == "past_due" else SubscriptionStatus.CANCELLED
        user_id = await self._store.set_subscription_status(customer_id, status)

        if user_id:
            await self._analytics.track(
                AnalyticsEventType.SUBSCRIPTION_CANCELLED,
                user_id,
                {"reason": reason},
            )

        return user_id

    # =========================================================================
    # Manual Sync
    # =========================================================================

    async def sync_for_user(self, user_id: str, email: Optional[str]) -> SyncResult:
        """
        Re-query Stripe by email and activate if a live subscription exists.

        Raises:
            ClientInputInvalid: the user has no email to look up
            NotFoundError: reason ``no_customer`` or ``no_active_subscription``
        """
        if not email:
            raise ClientInputInvalid("User email is required to sync a subscription")

        customer = await self._stripe.find_customer_by_email(email)
        if customer is None:
            raise NotFoundError("No Stripe customer found with your email", reason="no_customer")

        customer_id = customer["id"]
        await self._store.link_customer_by_user_id(user_id, customer_id)

        subscription = await self._stripe.find_active_subscription(customer_id)
        if subscription is None:
            raise NotFoundError(
                "No active subscription found. If you just subscribed, "
                "please wait a moment and try again.",
                reason="no_active_subscription",
            )

        start = _from_timestamp(subscription.get("start_date"))
        await self.activate(customer_id, subscription["id"], start)

        logger.info(f"Synced subscription {subscription['id']} for user {user_id}")
        return SyncResult(
            customer_id=customer_id,
            subscription_id=subscription["id"],
            start_date=start,
            end_date=approximate_period_end(start),
        )

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_subscription_info(self, user_id: str) -> SubscriptionInfo:
        """Display read; any store failure reads as an inactive subscription."""
        try:
            entitlement = await self._store.get_entitlement(user_id)
        except (StoreError, ConfigurationError) as e:
            logger.error(f"Failed to get subscription info for user {user_id}: {e}")
            return SubscriptionInfo()

        return SubscriptionInfo.from_entitlement(entitlement)
