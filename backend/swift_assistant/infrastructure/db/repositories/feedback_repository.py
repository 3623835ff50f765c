"""
Feedback Repository

Stores survey answers and answers "has this user ever given feedback".
"""

import logging
from typing import Optional

from sqlalchemy import select

from swift_assistant.domain.interaction import FeedbackRequest
from swift_assistant.infrastructure.db.models.feedback import FeedbackModel
from swift_assistant.infrastructure.db.repositories.base_repository import BaseRepository


logger = logging.getLogger(__name__)


class FeedbackRepository(BaseRepository):
    """Repository for the feedback table."""

    table_name = FeedbackModel.__tablename__

    async def create(self, user_id: str, feedback: FeedbackRequest) -> str:
        model = FeedbackModel(
            user_id=user_id,
            problem_solved=feedback.problem_solved,
            most_important_feature=feedback.most_important_feature,
            improvement=feedback.improvement,
        )

        async with self._unit_of_work("create") as session:
            session.add(model)
            await session.flush()

        logger.info(f"Stored feedback {model.id} from user {user_id}")
        return str(model.id)

    async def exists_for_user(self, user_id: str) -> bool:
        async with self._unit_of_work("exists_for_user") as session:
            result = await session.execute(
                select(FeedbackModel.id).where(FeedbackModel.user_id == user_id).limit(1)
            )
            return result.first() is not None


_feedback_repository: Optional[FeedbackRepository] = None


def get_feedback_repository() -> FeedbackRepository:
    """Get or create feedback repository singleton."""
    global _feedback_repository
    if _feedback_repository is None:
        _feedback_repository = FeedbackRepository()
    return _feedback_repository
