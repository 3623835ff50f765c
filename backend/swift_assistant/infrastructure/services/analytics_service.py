"""
Analytics Service

Tracks subscription and feedback events.
"""

import logging
from typing import Any, Dict, Optional

from swift_assistant.domain.interfaces import AnalyticsSink
from swift_assistant.domain.subscription import AnalyticsEventType
from swift_assistant.infrastructure.db.repositories.analytics_repository import (
    AnalyticsEventRepository,
    get_analytics_repository,
)
from swift_assistant.infrastructure.exceptions import ConfigurationError, StoreError


logger = logging.getLogger(__name__)


class AnalyticsService(AnalyticsSink):
    """
    Fire-and-forget event sink.

    Tracking never fails the caller; a failed insert is logged and dropped.
    """

    def __init__(self, repository: Optional[AnalyticsEventRepository] = None):
        self._repository = repository or get_analytics_repository()

    async def track(
        self,
        event_type: str,
        user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        if isinstance(event_type, AnalyticsEventType):
            event_type = event_type.value

        try:
            await self._repository.create(event_type, user_id=user_id, metadata=metadata)
            logger.debug(f"[ANALYTICS] Tracked {event_type} for user {user_id}")
        except (StoreError, ConfigurationError) as e:
            logger.warning(f"[ANALYTICS] Dropped {event_type} event: {e}")


_analytics_service: Optional[AnalyticsService] = None


def get_analytics_service() -> AnalyticsService:
    """Get or create analytics service singleton."""
    global _analytics_service
    if _analytics_service is None:
        _analytics_service = AnalyticsService()
    return _analytics_service
