"""
Unit tests for conversation assembly.
"""

from datetime import datetime, timezone

import pytest

from swift_assistant.domain.interaction import ChatTurn, RequestContext
from swift_assistant.domain.prompt import (
    build_conversation,
    build_system_prompt,
    is_valid_screenshot,
    resolve_local_time,
    resolve_location,
)


NOON_UTC = datetime(2025, 7, 4, 12, 0, 0, tzinfo=timezone.utc)


class TestLocation:

    @pytest.mark.asyncio
    async def test_full_location(self):
        context = RequestContext(city="Lisbon", region="11", country="PT")
        assert await resolve_location(context) == "Lisbon, 11, PT"

    @pytest.mark.asyncio
    async def test_partial_location_is_unknown(self):
        context = RequestContext(city="Lisbon")
        assert await resolve_location(context) == "unknown"


class TestLocalTime:

    @pytest.mark.asyncio
    async def test_uses_client_time_zone(self):
        context = RequestContext(timezone="America/New_York")
        assert await resolve_local_time(context, NOON_UTC) == "07/04/2025, 08:00:00 AM"

    @pytest.mark.asyncio
    async def test_bad_time_zone_falls_back_to_utc(self):
        context = RequestContext(timezone="Mars/Olympus_Mons")
        assert await resolve_local_time(context, NOON_UTC) == "07/04/2025, 12:00:00 PM"


class TestSystemPrompt:

    def test_mentions_location_and_time(self):
        prompt = build_system_prompt("Lisbon, 11, PT", "07/04/2025, 12:00:00 PM", screen_visible=False)
        assert "User location is Lisbon, 11, PT." in prompt
        assert "The current time is 07/04/2025, 12:00:00 PM." in prompt
        assert "cannot see the user's screen" in prompt

    def test_screen_visible_variant(self):
        prompt = build_system_prompt("unknown", "now", screen_visible=True)
        assert "sharing their desktop screen" in prompt
        assert "cannot see" not in prompt

    def test_forbids_formatting(self):
        prompt = build_system_prompt("unknown", "now", screen_visible=False)
        assert "Do not use markdown" in prompt


class TestScreenshotValidation:

    def test_accepts_image_data_url(self):
        assert is_valid_screenshot("data:image/jpeg;base64,/9j/4AAQSkZJRg==")

    def test_rejects_other_media(self):
        assert not is_valid_screenshot("data:text/plain;base64,aGVsbG8=")

    def test_rejects_plain_url(self):
        assert not is_valid_screenshot("https://example.com/shot.png")


class TestBuildConversation:

    @pytest.mark.asyncio
    async def test_order(self):
        history = [ChatTurn(role="user", content="a"), ChatTurn(role="assistant", content="b")]

        messages = await build_conversation("c", history, RequestContext(), now=NOON_UTC)

        assert messages[0]["role"] == "system"
        assert messages[1:] == [
            {"role": "user", "content": "a"},
            {"role": "assistant", "content": "b"},
            {"role": "user", "content": "c"},
        ]

    @pytest.mark.asyncio
    async def test_screenshot_makes_multipart_turn(self):
        shot = "data:image/png;base64,AAAA"

        messages = await build_conversation("look", [], RequestContext(), screenshot=shot, now=NOON_UTC)

        assert messages[-1]["content"] == [
            {"type": "text", "text": "look"},
            {"type": "image_url", "image_url": {"url": shot}},
        ]
