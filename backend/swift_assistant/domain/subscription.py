"""
Subscription Domain Models

Enums, DTOs, and domain entities for the subscription bounded context.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status."""
    INACTIVE = "inactive"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    PAST_DUE = "past_due"


class AnalyticsEventType(str, Enum):
    """Analytics events written by the application."""
    SUBSCRIPTION_CREATED = "subscription_created"
    SUBSCRIPTION_CANCELLED = "subscription_cancelled"
    REFUND = "refund"
    FEEDBACK_SUBMITTED = "feedback_submitted"


# Display-only approximation; enforcement uses status, never dates.
SUBSCRIPTION_PERIOD = timedelta(days=30)


def approximate_period_end(start: datetime) -> datetime:
    """Estimate the end of a monthly billing period."""
    return start + SUBSCRIPTION_PERIOD


# =============================================================================
# Domain Entities
# =============================================================================

class Entitlement(BaseModel):
    """A user's subscription state and override flag, as persisted."""
    user_id: str
    status: SubscriptionStatus = SubscriptionStatus.INACTIVE
    disable_usage_limit: bool = False
    customer_id: Optional[str] = None
    subscription_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_entitled(self) -> bool:
        """Admin override always wins over billing status."""
        return self.disable_usage_limit or self.status == SubscriptionStatus.ACTIVE


class SubscriptionInfo(BaseModel):
    """Read model used for display; never used for enforcement."""
    is_subscribed: bool = False
    status: SubscriptionStatus = SubscriptionStatus.INACTIVE
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    subscription_start_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None

    @classmethod
    def from_entitlement(cls, entitlement: Optional[Entitlement]) -> "SubscriptionInfo":
        if entitlement is None:
            return cls()
        return cls(
            is_subscribed=entitlement.is_entitled,
            status=entitlement.status,
            stripe_customer_id=entitlement.customer_id,
            stripe_subscription_id=entitlement.subscription_id,
            subscription_start_date=entitlement.start_date,
            subscription_end_date=entitlement.end_date,
        )


class SyncResult(BaseModel):
    """Outcome of a user-initiated billing resync."""
    customer_id: str
    subscription_id: str
    start_date: datetime
    end_date: datetime


# =============================================================================
# Request/Response DTOs
# =============================================================================

class CheckoutResponse(BaseModel):
    """Response DTO for checkout session creation."""
    url: str


class PortalResponse(BaseModel):
    """Response DTO for portal session creation."""
    url: str


class SyncResponse(BaseModel):
    """Response DTO for manual subscription sync."""
    success: bool
    message: str


class SubscriptionStatusResponse(BaseModel):
    """Response DTO for GET /subscription (camelCase for the web client)."""
    is_subscribed: bool = Field(serialization_alias="isSubscribed")
    status: SubscriptionStatus
    subscription_start_date: Optional[datetime] = Field(
        default=None, serialization_alias="subscriptionStartDate"
    )
    subscription_end_date: Optional[datetime] = Field(
        default=None, serialization_alias="subscriptionEndDate"
    )
    interaction_count: int = Field(serialization_alias="interactionCount")
    has_feedback: bool = Field(serialization_alias="hasFeedback")
    should_show_feedback: bool = Field(serialization_alias="shouldShowFeedback")


def should_show_feedback(
    is_subscribed: bool,
    interaction_count: int,
    has_feedback: bool,
    min_interactions: int = 3,
    max_interactions: int = 10,
) -> bool:
    """Prompt subscribers for feedback once, early in their usage."""
    return (
        is_subscribed
        and min_interactions <= interaction_count <= max_interactions
        and not has_feedback
    )
