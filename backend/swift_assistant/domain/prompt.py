"""
Prompt Assembly

Builds the chat-completion conversation for one exchange:
system instruction, prior turns, then the new user turn (optionally with
the shared screen attached as an image part).
"""

import asyncio
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from swift_assistant.domain.interaction import ChatTurn, RequestContext


UNKNOWN = "unknown"

SCREENSHOT_DATA_URL = re.compile(r"^data:image/[a-zA-Z+.-]+;base64,[A-Za-z0-9+/=\s]+$")

PERSONA = "You are Swift, a friendly and helpful voice assistant"

CONSTRAINTS = [
    "Respond briefly to the user's request, and do not provide unnecessary information.",
    "If you don't understand the user's request, ask for clarification.",
    "You do not have access to up-to-date information, so you should not provide real-time data.",
    "You are not capable of performing actions other than responding to the user.",
    "Do not use markdown, emojis, or other formatting in your responses. "
    "Respond in a way easily spoken by text-to-speech software.",
]


def is_valid_screenshot(data_url: str) -> bool:
    return bool(SCREENSHOT_DATA_URL.match(data_url))


async def resolve_location(context: RequestContext) -> str:
    """City, region and country from edge headers, or "unknown"."""
    if not (context.city and context.region and context.country):
        return UNKNOWN
    return f"{context.city}, {context.region}, {context.country}"


async def resolve_local_time(context: RequestContext, now: Optional[datetime] = None) -> str:
    """Current time in the caller's time zone, falling back to UTC."""
    now = now or datetime.now(timezone.utc)
    zone = timezone.utc
    if context.timezone:
        try:
            zone = ZoneInfo(context.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            zone = timezone.utc
    local = now.astimezone(zone)
    return local.strftime("%m/%d/%Y, %I:%M:%S %p")


def build_system_prompt(location: str, local_time: str, screen_visible: bool) -> str:
    if screen_visible:
        opening = f"{PERSONA} and the user is sharing their desktop screen with you."
    else:
        opening = f"{PERSONA}. You cannot see the user's screen for this message."

    lines = [f"- {opening}"]
    lines.extend(f"- {rule}" for rule in CONSTRAINTS)
    if screen_visible:
        lines.append("- Use the attached screenshot when the request refers to what is on screen.")
    lines.append(f"- User location is {location}.")
    lines.append(f"- The current time is {local_time}.")
    return "\n".join(lines)


async def build_conversation(
    transcript: str,
    history: List[ChatTurn],
    context: RequestContext,
    screenshot: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """
    Assemble the messages array sent to the completion provider.

    Location and time are independent lookups and are resolved together.
    """
    location, local_time = await asyncio.gather(
        resolve_location(context),
        resolve_local_time(context, now),
    )

    messages: List[Dict[str, Any]] = [
        {
            "role": "system",
            "content": build_system_prompt(location, local_time, screenshot is not None),
        }
    ]
    messages.extend({"role": turn.role.value, "content": turn.content} for turn in history)

    if screenshot is not None:
        messages.append({
            "role": "user",
            "content": [
                {"type": "text", "text": transcript},
                {"type": "image_url", "image_url": {"url": screenshot}},
            ],
        })
    else:
        messages.append({"role": "user", "content": transcript})

    return messages
