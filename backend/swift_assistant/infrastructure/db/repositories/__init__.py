"""
Repository Layer for Swift Assistant

Exports all repository classes for dependency injection.
"""

from swift_assistant.infrastructure.db.repositories.base_repository import (
    BaseRepository,
    dialect_insert,
)
from swift_assistant.infrastructure.db.repositories.entitlement_repository import (
    EntitlementRepository,
    get_entitlement_repository,
)
from swift_assistant.infrastructure.db.repositories.interaction_repository import (
    InteractionRepository,
    get_interaction_repository,
)
from swift_assistant.infrastructure.db.repositories.feedback_repository import (
    FeedbackRepository,
    get_feedback_repository,
)
from swift_assistant.infrastructure.db.repositories.analytics_repository import (
    AnalyticsEventRepository,
    get_analytics_repository,
)


__all__ = [
    # Base
    "BaseRepository",
    "dialect_insert",
    # Repositories
    "EntitlementRepository",
    "InteractionRepository",
    "FeedbackRepository",
    "AnalyticsEventRepository",
    # Singletons
    "get_entitlement_repository",
    "get_interaction_repository",
    "get_feedback_repository",
    "get_analytics_repository",
]
