"""
User Database Model

One row per authenticated identity, carrying its billing sub-state.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, String
from sqlmodel import Field, SQLModel


class UserModel(SQLModel, table=True):
    """
    Users table keyed by the identity provider's user id.

    Maps to the 'users' table in PostgreSQL.
    """

    __tablename__ = "users"

    id: str = Field(sa_column=Column(String(64), primary_key=True))
    email: Optional[str] = Field(default=None, index=True)

    # Subscription state
    subscription_status: str = Field(default="inactive", max_length=20)
    stripe_customer_id: Optional[str] = Field(default=None, unique=True, index=True)
    stripe_subscription_id: Optional[str] = Field(default=None)
    subscription_start_date: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    subscription_end_date: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    # Admin override: bypasses both the paywall and the daily cap
    disable_usage_limit: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
