"""
Analytics Event Repository

Insert-only access to the analytics_events table.
"""

from typing import Any, Dict, Optional

from swift_assistant.infrastructure.db.models.analytics_event import AnalyticsEventModel
from swift_assistant.infrastructure.db.repositories.base_repository import BaseRepository


class AnalyticsEventRepository(BaseRepository):
    """Repository for analytics events."""

    table_name = AnalyticsEventModel.__tablename__

    async def create(
        self,
        event_type: str,
        user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        model = AnalyticsEventModel(
            user_id=user_id,
            event_type=event_type,
            event_metadata=metadata,
        )

        async with self._unit_of_work("create") as session:
            session.add(model)
            await session.flush()

        return str(model.id)


_analytics_repository: Optional[AnalyticsEventRepository] = None


def get_analytics_repository() -> AnalyticsEventRepository:
    """Get or create analytics repository singleton."""
    global _analytics_repository
    if _analytics_repository is None:
        _analytics_repository = AnalyticsEventRepository()
    return _analytics_repository
