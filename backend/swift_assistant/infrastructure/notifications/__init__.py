"""
Notifications Infrastructure Module

Telegram admin alerts.
"""

from swift_assistant.infrastructure.notifications.notifier import (
    TelegramNotifier,
    escape_html,
    get_notifier,
)
from swift_assistant.infrastructure.notifications.telegram_service import (
    TelegramService,
    get_telegram_service,
)

__all__ = [
    "TelegramNotifier",
    "TelegramService",
    "escape_html",
    "get_notifier",
    "get_telegram_service",
]
