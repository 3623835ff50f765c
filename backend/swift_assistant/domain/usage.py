"""
Usage Domain Models

Daily usage window and admission decision types.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from pydantic import BaseModel


def utc_day_bounds(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """
    Return the UTC calendar day containing ``now`` as a half-open window.

    Both bounds are naive UTC datetimes, matching the ``interactions``
    table which stores ``created_at`` without a time zone.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)

    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


@dataclass(frozen=True)
class DailyUsage:
    """Result of a daily limit check."""
    exceeded: bool
    count: int


@dataclass(frozen=True)
class AdmissionDecision:
    """
    Whether a request may proceed past the paywall/usage gate.

    ``count`` and ``limit`` are None for anonymous and unlimited users,
    whose usage is not metered.
    """
    admitted: bool
    rate_limited: bool = False
    unlimited: bool = False
    entitled: bool = False
    count: Optional[int] = None
    limit: Optional[int] = None


class UsageResponse(BaseModel):
    """Response DTO for GET /usage."""
    count: int
    remaining: int
    limit: int
    percentage: int
    unlimited: bool = False

    @classmethod
    def build(cls, count: int, limit: int, unlimited: bool = False) -> "UsageResponse":
        return cls(
            count=count,
            remaining=max(0, limit - count),
            limit=limit,
            percentage=round(count / limit * 100) if limit else 0,
            unlimited=unlimited,
        )
