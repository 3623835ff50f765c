"""
Interaction Database Model

Append-only audit log; the count of rows per UTC day is the usage count.
"""

from sqlmodel import Field

from swift_assistant.infrastructure.db.models.base import CreatedAtMixin, UUIDMixin


class InteractionModel(UUIDMixin, CreatedAtMixin, table=True):
    """One admitted assistant exchange."""

    __tablename__ = "interactions"

    user_id: str = Field(
        foreign_key="users.id",
        index=True,
        nullable=False,
        max_length=64,
    )
