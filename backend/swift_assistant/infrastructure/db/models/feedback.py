"""
Feedback Database Model

Answers to the three-question survey. Not unique per user.
"""

from typing import Optional

from sqlmodel import Field

from swift_assistant.infrastructure.db.models.base import CreatedAtMixin, UUIDMixin


class FeedbackModel(UUIDMixin, CreatedAtMixin, table=True):
    """One feedback submission."""

    __tablename__ = "feedback"

    user_id: str = Field(foreign_key="users.id", index=True, max_length=64)
    problem_solved: Optional[str] = Field(default=None)
    most_important_feature: Optional[str] = Field(default=None)
    improvement: Optional[str] = Field(default=None)
