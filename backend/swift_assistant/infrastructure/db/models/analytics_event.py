"""
Analytics Event Model

Write-only telemetry sink; never read back by the core logic.
"""

from typing import Optional

from sqlalchemy import Column, JSON
from sqlmodel import Field

from swift_assistant.infrastructure.db.models.base import CreatedAtMixin, UUIDMixin


class AnalyticsEventModel(UUIDMixin, CreatedAtMixin, table=True):
    """Named event with an opaque metadata payload."""

    __tablename__ = "analytics_events"

    user_id: Optional[str] = Field(default=None, index=True, max_length=64)
    event_type: str = Field(max_length=50, index=True)
    event_metadata: Optional[dict] = Field(
        default=None,
        sa_column=Column("metadata", JSON, nullable=True),
        description="Event payload (amounts, reasons, subscription ids)"
    )
