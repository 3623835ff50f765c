"""
Interaction Repository

Append-only interaction log. Counting rows inside a window is how daily
usage is measured.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select

from swift_assistant.domain.interfaces import InteractionStore
from swift_assistant.infrastructure.db.models.interaction import InteractionModel
from swift_assistant.infrastructure.db.repositories.base_repository import BaseRepository


logger = logging.getLogger(__name__)


class InteractionRepository(BaseRepository, InteractionStore):
    """Repository for the interactions table."""

    table_name = InteractionModel.__tablename__

    async def count_between(self, user_id: str, start: datetime, end: datetime) -> int:
        """
        Count a user's interactions with ``start <= created_at < end``.

        Bounds must be naive UTC, matching the stored column.
        """
        async with self._unit_of_work("count_between") as session:
            result = await session.execute(
                select(func.count())
                .select_from(InteractionModel)
                .where(
                    InteractionModel.user_id == user_id,
                    InteractionModel.created_at >= start,
                    InteractionModel.created_at < end,
                )
            )
            return result.scalar_one()

    async def count_total(self, user_id: str) -> int:
        async with self._unit_of_work("count_total") as session:
            result = await session.execute(
                select(func.count())
                .select_from(InteractionModel)
                .where(InteractionModel.user_id == user_id)
            )
            return result.scalar_one()

    async def create(self, user_id: str, created_at: Optional[datetime] = None) -> str:
        """Insert one interaction row and return its id."""
        model = InteractionModel(user_id=user_id)
        if created_at is not None:
            model.created_at = created_at

        async with self._unit_of_work("create") as session:
            session.add(model)
            await session.flush()

        logger.debug(f"Recorded interaction {model.id} for user {user_id}")
        return str(model.id)


# Singleton instance
_interaction_repository: Optional[InteractionRepository] = None


def get_interaction_repository() -> InteractionRepository:
    """Get or create interaction repository singleton."""
    global _interaction_repository
    if _interaction_repository is None:
        _interaction_repository = InteractionRepository()
    return _interaction_repository
