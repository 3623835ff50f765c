"""
Usage Metering Service

Counts a user's interactions inside the current UTC calendar day and
records new ones. The limit itself is supplied by the caller.
"""

import logging
from datetime import datetime
from typing import Optional

from swift_assistant.domain.interfaces import EntitlementStore, InteractionStore
from swift_assistant.domain.usage import DailyUsage, utc_day_bounds
from swift_assistant.infrastructure.exceptions import ConfigurationError, StoreError


logger = logging.getLogger(__name__)


class UsageMeter:
    """
    Daily usage counter over the interactions log.

    Reads fail open: if the store cannot be counted the user is treated as
    having used nothing today. Writes never fail the request.
    """

    def __init__(self, interactions: InteractionStore, entitlements: EntitlementStore):
        self._interactions = interactions
        self._entitlements = entitlements

    async def check_daily_limit(
        self,
        user_id: str,
        limit: int,
        now: Optional[datetime] = None,
    ) -> DailyUsage:
        """
        Check whether the user has reached ``limit`` interactions today (UTC).

        Args:
            user_id: User to check
            limit: Interactions allowed per UTC day
            now: Clock override

        Returns:
            DailyUsage with ``exceeded = count >= limit``
        """
        start, end = utc_day_bounds(now)

        try:
            count = await self._interactions.count_between(user_id, start, end)
        except (StoreError, ConfigurationError) as e:
            logger.error(f"Usage check failed for user {user_id}, allowing request: {e}")
            return DailyUsage(exceeded=False, count=0)

        return DailyUsage(exceeded=count >= limit, count=count)

    async def record_interaction(self, user_id: str, email: Optional[str] = None) -> Optional[str]:
        """
        Commit one interaction against the user's daily usage.

        Returns:
            The new interaction id, or None when it could not be recorded
        """
        try:
            await self._entitlements.upsert_user_stub(user_id, email)
            interaction_id = await self._interactions.create(user_id)
        except (StoreError, ConfigurationError) as e:
            logger.error(f"Failed to record interaction for user {user_id}: {e}")
            return None

        return interaction_id

    async def total_interactions(self, user_id: str) -> int:
        """Lifetime interaction count (0 when it cannot be read)."""
        try:
            return await self._interactions.count_total(user_id)
        except (StoreError, ConfigurationError) as e:
            logger.error(f"Failed to count interactions for user {user_id}: {e}")
            return 0
