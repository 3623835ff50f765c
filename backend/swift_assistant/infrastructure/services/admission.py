"""
Admission Gate

Decides whether one more interaction may run for the caller, combining
the entitlement record, the paywall switch and the daily usage meter.
"""

import logging
from datetime import datetime
from typing import Optional

from swift_assistant.domain.interaction import CurrentUser
from swift_assistant.domain.interfaces import EntitlementStore
from swift_assistant.domain.subscription import Entitlement
from swift_assistant.domain.usage import AdmissionDecision
from swift_assistant.infrastructure.exceptions import (
    ConfigurationError,
    StoreError,
    SubscriptionRequired,
    Unauthenticated,
)
from swift_assistant.infrastructure.services.usage_metering import UsageMeter


logger = logging.getLogger(__name__)


class AdmissionGate:
    """
    Paywall and daily-limit decision layer.

    Order of checks:
        1. anonymous callers are admitted unmetered (or rejected when
           anonymous use is switched off)
        2. ``disable_usage_limit`` admits unconditionally
        3. with the paywall on, non-entitled users are refused
        4. everyone else is metered against the daily limit
    """

    def __init__(
        self,
        store: EntitlementStore,
        meter: UsageMeter,
        daily_limit: int = 10,
        paywall_enabled: bool = False,
        allow_anonymous: bool = True,
    ):
        self._store = store
        self._meter = meter
        self.daily_limit = daily_limit
        self.paywall_enabled = paywall_enabled
        self.allow_anonymous = allow_anonymous

    async def _load_entitlement(self, user_id: str) -> Optional[Entitlement]:
        try:
            return await self._store.get_entitlement(user_id)
        except (StoreError, ConfigurationError) as e:
            logger.error(f"Entitlement lookup failed for user {user_id}, treating as free tier: {e}")
            return None

    async def admit(
        self,
        user: Optional[CurrentUser],
        now: Optional[datetime] = None,
    ) -> AdmissionDecision:
        """
        Decide whether ``user`` may run one more interaction.

        Raises:
            Unauthenticated: anonymous caller while anonymous use is off
            SubscriptionRequired: paywall on and the user is not entitled
        """
        if user is None:
            if not self.allow_anonymous:
                raise Unauthenticated()
            return AdmissionDecision(admitted=True)

        entitlement = await self._load_entitlement(user.id)
        entitled = entitlement.is_entitled if entitlement else False

        if entitlement and entitlement.disable_usage_limit:
            return AdmissionDecision(admitted=True, unlimited=True, entitled=True)

        if self.paywall_enabled and not entitled:
            logger.info(f"Paywall refused user {user.id}")
            raise SubscriptionRequired()

        usage = await self._meter.check_daily_limit(user.id, self.daily_limit, now)
        if usage.exceeded:
            logger.info(
                f"User {user.id} reached daily limit ({usage.count}/{self.daily_limit})"
            )
            return AdmissionDecision(
                admitted=False,
                rate_limited=True,
                entitled=entitled,
                count=usage.count,
                limit=self.daily_limit,
            )

        return AdmissionDecision(
            admitted=True,
            entitled=entitled,
            count=usage.count,
            limit=self.daily_limit,
        )

    async def is_unlimited(self, user_id: str) -> bool:
        """Whether the admin override is set (display read, fails open to False)."""
        entitlement = await self._load_entitlement(user_id)
        return bool(entitlement and entitlement.disable_usage_limit)
