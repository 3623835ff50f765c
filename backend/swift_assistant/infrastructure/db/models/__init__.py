"""
SQLModel ORM Models for Swift Assistant

Import models here to register them with SQLModel.metadata
(used by Alembic autogenerate and test table creation).
"""

from swift_assistant.infrastructure.db.models.base import (
    CreatedAtMixin,
    UUIDMixin,
    utc_now,
)
from swift_assistant.infrastructure.db.models.user import UserModel
from swift_assistant.infrastructure.db.models.interaction import InteractionModel
from swift_assistant.infrastructure.db.models.feedback import FeedbackModel
from swift_assistant.infrastructure.db.models.analytics_event import AnalyticsEventModel


__all__ = [
    # Base
    "CreatedAtMixin",
    "UUIDMixin",
    "utc_now",
    # Tables
    "UserModel",
    "InteractionModel",
    "FeedbackModel",
    "AnalyticsEventModel",
]
