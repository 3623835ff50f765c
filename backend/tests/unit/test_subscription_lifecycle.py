"""
Unit tests for the subscription lifecycle manager.

Stripe is mocked at the StripeService boundary; events are plain dicts
shaped like the webhook payloads.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from swift_assistant.domain.subscription import SubscriptionStatus
from swift_assistant.infrastructure.exceptions import ClientInputInvalid, NotFoundError, StoreError
from swift_assistant.infrastructure.services.subscription_lifecycle import (
    SubscriptionLifecycleManager,
)


START_TS = 1_735_689_600  # 2025-01-01T00:00:00Z
START = datetime(2025, 1, 1, tzinfo=timezone.utc)


def event(event_type, obj):
    return {"id": "evt_1", "type": event_type, "data": {"object": obj}}


@pytest.fixture
def stripe_service():
    service = MagicMock()
    service.retrieve_subscription = AsyncMock(
        return_value={"id": "sub_1", "customer": "cus_1", "start_date": START_TS}
    )
    service.find_customer_by_email = AsyncMock(return_value={"id": "cus_1"})
    service.find_active_subscription = AsyncMock(
        return_value={"id": "sub_1", "customer": "cus_1", "start_date": START_TS}
    )
    return service


@pytest.fixture
def lifecycle(entitlement_store, stripe_service, analytics, notifier):
    return SubscriptionLifecycleManager(
        entitlement_store, stripe_service, analytics, notifier=notifier, price_cents=900
    )


@pytest.fixture
def subscriber(entitlement_store):
    """A user already linked to cus_1 and active."""
    entitlement_store.add_user(
        "user-1", "ada@example.com", customer_id="cus_1", status=SubscriptionStatus.ACTIVE
    )
    return entitlement_store.users["user-1"]


CHECKOUT = {
    "mode": "subscription",
    "customer": "cus_1",
    "subscription": "sub_1",
    "customer_email": "ada@example.com",
    "metadata": {"userId": "user-1"},
}


class TestCheckoutCompleted:

    @pytest.mark.asyncio
    async def test_activates_with_thirty_day_period(self, lifecycle, entitlement_store):
        handled = await lifecycle.handle_event(event("checkout.session.completed", CHECKOUT))

        row = entitlement_store.users["user-1"]
        assert handled is True
        assert row["status"] == SubscriptionStatus.ACTIVE
        assert row["customer_id"] == "cus_1"
        assert row["subscription_id"] == "sub_1"
        assert row["start_date"] == START
        assert row["end_date"] == START + timedelta(days=30)

    @pytest.mark.asyncio
    async def test_emits_subscription_created(self, lifecycle, analytics):
        await lifecycle.handle_event(event("checkout.session.completed", CHECKOUT))

        created = analytics.of_type("subscription_created")
        assert created == [("subscription_created", "user-1", {"stripeSubscriptionId": "sub_1", "amount": 900})]

    @pytest.mark.asyncio
    async def test_replay_is_idempotent_in_state(self, lifecycle, entitlement_store):
        await lifecycle.handle_event(event("checkout.session.completed", CHECKOUT))
        first = dict(entitlement_store.users["user-1"])

        await lifecycle.handle_event(event("checkout.session.completed", CHECKOUT))

        assert entitlement_store.users["user-1"] == first

    @pytest.mark.asyncio
    async def test_links_by_email_without_user_id(self, lifecycle, entitlement_store):
        entitlement_store.add_user("user-2", "bob@example.com")
        session = {**CHECKOUT, "metadata": {}, "customer_email": "bob@example.com"}

        await lifecycle.handle_event(event("checkout.session.completed", session))

        assert entitlement_store.users["user-2"]["status"] == SubscriptionStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_missing_user_id_and_email(self, lifecycle, stripe_service):
        session = {**CHECKOUT, "metadata": {}, "customer_email": None}

        with pytest.raises(ClientInputInvalid):
            await lifecycle.handle_event(event("checkout.session.completed", session))

        stripe_service.retrieve_subscription.assert_not_called()

    @pytest.mark.asyncio
    async def test_payment_mode_ignored(self, lifecycle, entitlement_store):
        handled = await lifecycle.handle_event(
            event("checkout.session.completed", {**CHECKOUT, "mode": "payment"})
        )

        assert handled is False
        assert entitlement_store.users == {}

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, lifecycle, entitlement_store):
        entitlement_store.fail = True

        with pytest.raises(StoreError):
            await lifecycle.handle_event(event("checkout.session.completed", CHECKOUT))


class TestSubscriptionChanges:

    @pytest.mark.asyncio
    async def test_updated_active_refreshes_dates(self, lifecycle, subscriber):
        renewed = START_TS + 30 * 86400
        await lifecycle.handle_event(event(
            "customer.subscription.updated",
            {"id": "sub_2", "customer": "cus_1", "status": "active", "start_date": renewed},
        ))

        assert subscriber["subscription_id"] == "sub_2"
        assert subscriber["end_date"] - subscriber["start_date"] == timedelta(days=30)

    @pytest.mark.asyncio
    async def test_updated_past_due(self, lifecycle, subscriber):
        await lifecycle.handle_event(event(
            "customer.subscription.updated",
            {"id": "sub_1", "customer": "cus_1", "status": "past_due"},
        ))

        assert subscriber["status"] == SubscriptionStatus.PAST_DUE

    @pytest.mark.asyncio
    async def test_updated_other_status_ignored(self, lifecycle, subscriber):
        handled = await lifecycle.handle_event(event(
            "customer.subscription.updated",
            {"id": "sub_1", "customer": "cus_1", "status": "trialing"},
        ))

        assert handled is False
        assert subscriber["status"] == SubscriptionStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_deleted_cancels(self, lifecycle, subscriber, analytics):
        await lifecycle.handle_event(event("customer.subscription.deleted", {"customer": "cus_1"}))

        assert subscriber["status"] == SubscriptionStatus.CANCELLED
        assert analytics.of_type("subscription_cancelled") == [
            ("subscription_cancelled", "user-1", {"reason": "cancelled"})
        ]

    @pytest.mark.asyncio
    async def test_refund_cancels_and_records_one_refund(self, lifecycle, subscriber, analytics):
        await lifecycle.handle_event(event(
            "charge.refunded", {"customer": "cus_1", "amount_refunded": 900}
        ))

        assert subscriber["status"] == SubscriptionStatus.CANCELLED
        assert analytics.of_type("refund") == [
            ("refund", "user-1", {"stripeCustomerId": "cus_1", "amount": 900})
        ]

    @pytest.mark.asyncio
    async def test_payment_failed_marks_past_due_and_alerts(self, lifecycle, subscriber, notifier):
        await lifecycle.handle_event(event("invoice.payment_failed", {"customer": "cus_1"}))

        assert subscriber["status"] == SubscriptionStatus.PAST_DUE
        assert notifier.payment_failures == [("cus_1", "user-1")]

    @pytest.mark.asyncio
    async def test_unknown_customer_is_a_no_op(self, lifecycle, analytics):
        await lifecycle.handle_event(event("customer.subscription.deleted", {"customer": "cus_nobody"}))

        assert analytics.events == []

    @pytest.mark.asyncio
    async def test_unhandled_type_ignored(self, lifecycle):
        assert await lifecycle.handle_event(event("customer.created", {"id": "cus_1"})) is False


class TestManualSync:

    @pytest.mark.asyncio
    async def test_sync_activates(self, lifecycle, entitlement_store):
        result = await lifecycle.sync_for_user("user-1", "ada@example.com")

        assert result.customer_id == "cus_1"
        assert result.end_date == START + timedelta(days=30)
        assert entitlement_store.users["user-1"]["status"] == SubscriptionStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_no_customer(self, lifecycle, stripe_service):
        stripe_service.find_customer_by_email.return_value = None

        with pytest.raises(NotFoundError) as exc_info:
            await lifecycle.sync_for_user("user-1", "ada@example.com")

        assert exc_info.value.reason == "no_customer"

    @pytest.mark.asyncio
    async def test_no_active_subscription(self, lifecycle, stripe_service, entitlement_store):
        stripe_service.find_active_subscription.return_value = None

        with pytest.raises(NotFoundError) as exc_info:
            await lifecycle.sync_for_user("user-1", "ada@example.com")

        assert exc_info.value.reason == "no_active_subscription"
        # The customer is still linked for the next attempt
        assert entitlement_store.users["user-1"]["customer_id"] == "cus_1"

    @pytest.mark.asyncio
    async def test_requires_email(self, lifecycle):
        with pytest.raises(ClientInputInvalid):
            await lifecycle.sync_for_user("user-1", None)


class TestSubscriptionInfo:

    @pytest.mark.asyncio
    async def test_reads_entitlement(self, lifecycle, subscriber):
        info = await lifecycle.get_subscription_info("user-1")

        assert info.is_subscribed is True
        assert info.stripe_customer_id == "cus_1"

    @pytest.mark.asyncio
    async def test_fails_open(self, lifecycle, entitlement_store):
        entitlement_store.fail = True

        info = await lifecycle.get_subscription_info("user-1")

        assert info.is_subscribed is False
        assert info.status == SubscriptionStatus.INACTIVE
