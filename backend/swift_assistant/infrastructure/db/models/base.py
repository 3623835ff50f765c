"""
Base Model for SQLModel ORM

Provides common fields for the append-only tables.
"""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    """Naive UTC timestamp; append-only tables store time without a zone."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class UUIDMixin(SQLModel):
    """Mixin providing a UUID primary key."""

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        nullable=False,
        description="Unique identifier (UUID v4)"
    )


class CreatedAtMixin(SQLModel):
    """Mixin providing an immutable creation timestamp."""

    # Explicit type: a bare datetime field maps to an aware-only column
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(),
        nullable=False,
        index=True,
        description="Record creation timestamp (naive UTC)"
    )
