"""
Telegram Admin Notifier

Formats operator alerts (provider errors, signups, payment failures) and
delivers them to a single admin chat through the Bot API.
"""

import html
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from swift_assistant.config.settings import settings
from swift_assistant.domain.interfaces import Notifier
from swift_assistant.infrastructure.notifications.telegram_service import (
    TelegramService,
    get_telegram_service,
)


logger = logging.getLogger(__name__)


def escape_html(text: Any) -> str:
    """Escape the characters Telegram's HTML parse mode treats as markup."""
    return html.escape(str(text), quote=True)


def format_timestamp(moment: Optional[datetime] = None) -> str:
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%m/%d/%Y, %I:%M:%S %p UTC")


def _format_details(details: Any) -> str:
    if isinstance(details, str):
        return details
    try:
        return json.dumps(details, indent=2, default=str)
    except (TypeError, ValueError):
        return repr(details)


class TelegramNotifier(Notifier):
    """
    Best-effort operator notifications.

    Disabled (every call returns False) unless both the bot token and the
    admin chat id are configured. No method raises.
    """

    def __init__(
        self,
        telegram: Optional[TelegramService] = None,
        admin_chat_id: Optional[str] = None,
    ):
        self._telegram = telegram or get_telegram_service()
        self._admin_chat_id = admin_chat_id or settings.telegram_admin_user_id

    @property
    def enabled(self) -> bool:
        return bool(self._admin_chat_id and self._telegram.configured)

    async def _deliver(self, html: str, label: str) -> bool:
        if not self.enabled:
            logger.debug(f"[NOTIFY] Disabled, dropping {label} notification")
            return False

        try:
            sent = await self._telegram.send_html_message(self._admin_chat_id, html)
        except Exception as e:
            logger.error(f"[NOTIFY] Error sending {label} notification: {e}")
            return False

        if sent:
            logger.info(f"[NOTIFY] Sent {label} notification")
        else:
            logger.error(f"[NOTIFY] Failed to send {label} notification")
        return sent

    async def notify(
        self,
        kind: str,
        message: str,
        details: Any = None,
        correlation_id: Optional[str] = None,
    ) -> bool:
        lines = [
            f"<b>{escape_html(kind)}</b>",
            "",
            escape_html(message),
        ]
        if correlation_id:
            lines.append("")
            lines.append(f"<b>Request ID:</b> <code>{escape_html(correlation_id)}</code>")
        lines.append(f"<b>Time:</b> {format_timestamp()}")
        if details is not None:
            lines.append("")
            lines.append(f"<b>Details:</b>\n<code>{escape_html(_format_details(details))}</code>")

        return await self._deliver("\n".join(lines), kind)

    async def notify_error(
        self,
        service: str,
        error: str,
        details: Any = None,
        correlation_id: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> bool:
        """Provider/system failure: service, error, request id and UTC time."""
        lines = [
            f"<b>{escape_html(service)} API Error</b>",
            "",
            f"<b>Error:</b> {escape_html(error)}",
            "",
            f"<b>Request ID:</b> <code>{escape_html(correlation_id or 'unknown')}</code>",
            f"<b>Time:</b> {format_timestamp()}",
        ]
        if details is not None:
            lines.append("")
            lines.append(f"<b>Details:</b>\n<code>{escape_html(_format_details(details))}</code>")
        if user_agent:
            lines.append("")
            lines.append(f"<b>User Agent:</b> <code>{escape_html(user_agent)}</code>")

        return await self._deliver("\n".join(lines), f"{service} error")

    async def notify_user_signup(self, email: Optional[str], method: str = "email") -> bool:
        """Announce a new identity. Callers only invoke this for first sign-ins."""
        method_text = "Google OAuth" if method == "google" else "Email/Password"
        html = "\n".join([
            "<b>New User Signup!</b>",
            "",
            f"<b>Email:</b> {escape_html(email or 'unknown')}",
            f"<b>Method:</b> {method_text}",
            f"<b>Time:</b> {format_timestamp()}",
        ])
        return await self._deliver(html, "signup")

    async def notify_payment_failed(self, customer_id: str, user_id: Optional[str] = None) -> bool:
        details = {"stripeCustomerId": customer_id}
        if user_id:
            details["userId"] = user_id
        return await self.notify("Payment Failed", "An invoice payment failed.", details)


_notifier: Optional[TelegramNotifier] = None


def get_notifier() -> TelegramNotifier:
    """Get or create notifier singleton."""
    global _notifier
    if _notifier is None:
        _notifier = TelegramNotifier()
    return _notifier
