"""
Admin Routes for the Telegram Bot

Pass-through endpoints used while setting up operator notifications:
send a message, check the bot identity, look up a chat, read updates.
Protected by API key authentication.
"""

import logging
import secrets
from typing import Literal, Optional, Union

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from swift_assistant.api.dependencies import get_telegram
from swift_assistant.config.settings import get_settings
from swift_assistant.infrastructure.notifications.telegram_service import TelegramService


logger = logging.getLogger(__name__)


# =============================================================================
# Admin API Key Authentication
# =============================================================================

async def verify_admin_api_key(
    x_admin_key: str = Header(..., description="Admin API key for protected operations")
) -> bool:
    """
    Verify admin API key from header.

    The admin key should be set in environment variable ADMIN_API_KEY.
    """
    expected_key = get_settings().admin_api_key

    if not expected_key:
        logger.error("ADMIN_API_KEY environment variable not set")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin authentication not configured"
        )

    # Use secrets.compare_digest for timing-attack resistance
    if not secrets.compare_digest(x_admin_key, expected_key):
        logger.warning("Invalid admin API key attempt")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin API key"
        )

    return True


router = APIRouter(
    prefix="/admin/telegram",
    tags=["admin"],
    dependencies=[Depends(verify_admin_api_key)]
)


# =============================================================================
# Request Models
# =============================================================================

class SendMessageRequest(BaseModel):
    """Body for POST /admin/telegram/send."""
    chat_id: Union[str, int] = Field(alias="chatId")
    message: str = Field(min_length=1)
    parse_mode: Optional[Literal["HTML", "Markdown", "MarkdownV2"]] = Field(default=None, alias="parseMode")
    disable_web_page_preview: Optional[bool] = Field(default=None, alias="disableWebPagePreview")
    disable_notification: Optional[bool] = Field(default=None, alias="disableNotification")

    model_config = ConfigDict(populate_by_name=True)


class ChatLookupRequest(BaseModel):
    """Body for POST /admin/telegram/chat."""
    chat_id: Union[str, int] = Field(alias="chatId")

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/send")
async def send_message(
    request: SendMessageRequest,
    telegram: TelegramService = Depends(get_telegram),
):
    """Send an arbitrary message through the admin bot."""
    sent = await telegram.send_message(
        request.chat_id,
        request.message,
        parse_mode=request.parse_mode,
        disable_web_page_preview=request.disable_web_page_preview,
        disable_notification=request.disable_notification,
    )

    if not sent:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to send message"
        )

    return {"success": True, "message": "Message sent successfully"}


@router.get("/bot")
async def get_bot_info(telegram: TelegramService = Depends(get_telegram)):
    """Check bot connectivity."""
    bot = await telegram.get_bot_info()

    if not bot:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to connect to Telegram bot"
        )

    return {
        "success": True,
        "bot": {
            "id": bot.get("id"),
            "name": bot.get("first_name"),
            "username": bot.get("username"),
            "isBot": bot.get("is_bot"),
        },
    }


@router.post("/chat")
async def get_chat(
    request: ChatLookupRequest,
    telegram: TelegramService = Depends(get_telegram),
):
    """Look up a chat the bot can see."""
    chat = await telegram.get_chat(request.chat_id)

    if not chat:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Chat not found or bot has no access"
        )

    return {
        "success": True,
        "chat": {
            key: chat.get(key)
            for key in ("id", "type", "title", "username", "first_name", "last_name", "bio", "description")
        },
    }


@router.get("/updates")
async def get_updates(
    offset: Optional[int] = Query(default=None),
    limit: int = Query(default=10, ge=1, le=100),
    telegram: TelegramService = Depends(get_telegram),
):
    """Recent updates, used to discover the admin chat id."""
    updates = await telegram.get_updates(offset, limit)

    summaries = []
    for update in updates:
        message = update.get("message")
        summary = {"update_id": update.get("update_id"), "message": None}
        if message:
            sender = message.get("from") or {}
            chat = message.get("chat") or {}
            summary["message"] = {
                "message_id": message.get("message_id"),
                "from": {
                    "id": sender.get("id"),
                    "first_name": sender.get("first_name"),
                    "username": sender.get("username"),
                },
                "chat": {
                    "id": chat.get("id"),
                    "type": chat.get("type"),
                    "title": chat.get("title"),
                },
                "date": message.get("date"),
                "text": message.get("text"),
            }
        summaries.append(summary)

    return {"success": True, "updates": summaries}
