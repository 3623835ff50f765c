"""
Unit tests for daily usage metering.

Covers the UTC day window, the limit comparison and the fail-open reads.
"""

from datetime import datetime, timedelta, timezone

import pytest

from swift_assistant.domain.usage import UsageResponse, utc_day_bounds


class TestUtcDayBounds:
    """Tests for the half-open UTC calendar day."""

    def test_window_starts_at_midnight(self):
        start, end = utc_day_bounds(datetime(2025, 3, 14, 15, 9, 26))
        assert start == datetime(2025, 3, 14)
        assert end == datetime(2025, 3, 15)

    def test_aware_datetime_converted_to_utc(self):
        """23:30 in UTC-05:00 is already the next UTC day."""
        eastern = timezone(timedelta(hours=-5))
        start, end = utc_day_bounds(datetime(2025, 3, 14, 23, 30, tzinfo=eastern))
        assert start == datetime(2025, 3, 15)
        assert start.tzinfo is None

    def test_end_is_exclusive(self):
        start, end = utc_day_bounds(datetime(2025, 3, 14, 23, 59, 59, 999000))
        assert start == datetime(2025, 3, 14)
        assert end == datetime(2025, 3, 15)


class TestUsageMeter:
    """Tests for UsageMeter against the in-memory interaction log."""

    @pytest.mark.asyncio
    async def test_under_limit(self, meter, interaction_store):
        now = datetime(2025, 3, 14, 12)
        interaction_store.seed("user-1", 9, at=datetime(2025, 3, 14, 8))

        usage = await meter.check_daily_limit("user-1", 10, now)

        assert usage.count == 9
        assert usage.exceeded is False

    @pytest.mark.asyncio
    async def test_at_limit_is_exceeded(self, meter, interaction_store):
        now = datetime(2025, 3, 14, 12)
        interaction_store.seed("user-1", 10, at=datetime(2025, 3, 14, 8))

        usage = await meter.check_daily_limit("user-1", 10, now)

        assert usage.count == 10
        assert usage.exceeded is True

    @pytest.mark.asyncio
    async def test_midnight_resets_count(self, meter, interaction_store):
        """Ten rows at 23:59:59.999 count on that day, not on the next one."""
        interaction_store.seed("user-1", 10, at=datetime(2025, 3, 14, 23, 59, 59, 999000))

        before = await meter.check_daily_limit("user-1", 10, datetime(2025, 3, 14, 23, 59, 59, 999000))
        after = await meter.check_daily_limit("user-1", 10, datetime(2025, 3, 15, 0, 0, 0))

        assert before.exceeded is True
        assert after.count == 0
        assert after.exceeded is False

    @pytest.mark.asyncio
    async def test_counts_are_per_user(self, meter, interaction_store):
        now = datetime(2025, 3, 14, 12)
        interaction_store.seed("someone-else", 10, at=datetime(2025, 3, 14, 8))

        usage = await meter.check_daily_limit("user-1", 10, now)

        assert usage.count == 0

    @pytest.mark.asyncio
    async def test_store_failure_fails_open(self, meter, interaction_store):
        interaction_store.fail = True

        usage = await meter.check_daily_limit("user-1", 10)

        assert usage.exceeded is False
        assert usage.count == 0

    @pytest.mark.asyncio
    async def test_record_interaction_creates_user_stub(self, meter, interaction_store, entitlement_store):
        interaction_id = await meter.record_interaction("user-1", "ada@example.com")

        assert interaction_id is not None
        assert "user-1" in entitlement_store.users
        assert await interaction_store.count_total("user-1") == 1

    @pytest.mark.asyncio
    async def test_record_interaction_never_raises(self, meter, interaction_store):
        interaction_store.fail = True

        assert await meter.record_interaction("user-1") is None

    @pytest.mark.asyncio
    async def test_total_interactions_fails_open(self, meter, interaction_store):
        interaction_store.fail = True

        assert await meter.total_interactions("user-1") == 0


class TestUsageResponse:
    """Tests for the GET /usage body."""

    def test_build(self):
        usage = UsageResponse.build(count=4, limit=10)
        assert usage.remaining == 6
        assert usage.percentage == 40
        assert usage.unlimited is False

    def test_remaining_never_negative(self):
        usage = UsageResponse.build(count=12, limit=10)
        assert usage.remaining == 0
        assert usage.percentage == 120
