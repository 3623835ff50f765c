"""
Feedback API Route

Stores the three-question survey and records a feedback_submitted event.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from swift_assistant.api.dependencies import (
    get_analytics,
    get_current_user,
    get_entitlement_store,
    get_feedback_store,
)
from swift_assistant.domain.interaction import CurrentUser, FeedbackRequest
from swift_assistant.domain.subscription import AnalyticsEventType
from swift_assistant.infrastructure.db.repositories import EntitlementRepository, FeedbackRepository
from swift_assistant.infrastructure.services.analytics_service import AnalyticsService


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/feedback")
async def submit_feedback(
    feedback: FeedbackRequest,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(get_current_user),
    store: EntitlementRepository = Depends(get_entitlement_store),
    feedback_store: FeedbackRepository = Depends(get_feedback_store),
    analytics: AnalyticsService = Depends(get_analytics),
):
    """Persist the answers; the analytics event runs after the response."""
    normalized = FeedbackRequest(
        problem_solved=feedback.problem_solved or None,
        most_important_feature=feedback.most_important_feature or None,
        improvement=feedback.improvement or None,
    )

    # feedback.user_id references users.id
    await store.upsert_user_stub(user.id, user.email)
    await feedback_store.create(user.id, normalized)

    background_tasks.add_task(
        analytics.track,
        AnalyticsEventType.FEEDBACK_SUBMITTED,
        user.id,
        {
            "hasResponse": {
                "problemSolved": bool(normalized.problem_solved),
                "mostImportantFeature": bool(normalized.most_important_feature),
                "improvement": bool(normalized.improvement),
            }
        },
    )

    logger.info(f"Feedback stored for user {user.id}")
    return {"success": True}
