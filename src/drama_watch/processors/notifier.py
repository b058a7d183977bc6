"""
Telegram notifications for newly discovered items.

Messages are rendered once and delivered to every configured chat id in turn.
A failed delivery is logged and never affects the other chats or the run.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

import requests

from ..core.errors import NotificationError
from ..core.models import ChatId, TelegramSettings
from ..core.text_utils import escape_html, sort_titles, truncate

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"
TELEGRAM_MAX_MESSAGE_LENGTH = 4096
DEFAULT_NOTIFY_TIMEOUT = 15


def render_message(new_items_by_source: Mapping[str, Sequence[str]]) -> str:
    """Render the HTML notification body (Telegram ``parse_mode=HTML``)."""
    parts: List[str] = ["<b>✨ New items found!</b>", ""]
    for source_name, items in new_items_by_source.items():
        parts.append(f"<b>{escape_html(source_name)}:</b>")
        parts.extend(f"• {escape_html(item)}" for item in sort_titles(items))
        parts.append("")
    return truncate("\n".join(parts).rstrip() + "\n", TELEGRAM_MAX_MESSAGE_LENGTH)


class TelegramNotifier:
    """Deliver messages through the Telegram Bot API ``sendMessage`` method."""

    def __init__(
        self,
        bot_token: str,
        chat_ids: Sequence[ChatId],
        *,
        timeout: float = DEFAULT_NOTIFY_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.bot_token = bot_token
        self.chat_ids = list(chat_ids)
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: TelegramSettings, **kwargs: Any) -> "TelegramNotifier":
        return cls(settings.bot_token, settings.chat_ids, **kwargs)

    @property
    def configured(self) -> bool:
        return bool(self.bot_token) and bool(self.chat_ids)

    def send(self, chat_id: ChatId, message: str) -> None:
        """Send *message* to one chat.

        Raises:
            NotificationError: On transport failure, HTTP error or an API
                response with ``ok: false``.
        """
        url = TELEGRAM_API_URL.format(token=self.bot_token)
        payload = {
            "chat_id": chat_id,
            "text": message,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        destination = str(chat_id)
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise NotificationError(f"Telegram request failed: {type(e).__name__}", destination=destination) from e

        try:
            result = response.json()
        except ValueError:
            result = {}
        if not isinstance(result, dict):
            result = {}

        if response.status_code >= 400 or not result.get("ok"):
            description = result.get("description") or getattr(response, "reason", "") or "unknown error"
            if response.status_code == 401:
                description = f"{description} (check bot token)"
            elif response.status_code == 400:
                description = f"{description} (check chat id)"
            raise NotificationError(
                f"Telegram API error {response.status_code}: {description}", destination=destination
            )

    def notify(self, new_items_by_source: Mapping[str, Sequence[str]]) -> Dict[str, bool]:
        """Send the rendered digest to every chat; return per-chat success."""
        if not self.configured:
            logger.info("🔔 Telegram bot token or chat id not set; notification skipped")
            return {}

        message = render_message(new_items_by_source)
        outcome: Dict[str, bool] = {}
        for chat_id in self.chat_ids:
            try:
                self.send(chat_id, message)
            except NotificationError as e:
                logger.error("❌ Telegram notification to chat %s failed: %s", chat_id, e.message)
                outcome[str(chat_id)] = False
            else:
                logger.info("📤 Telegram notification sent to chat %s", chat_id)
                outcome[str(chat_id)] = True
        return outcome

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


__all__ = [
    "TELEGRAM_MAX_MESSAGE_LENGTH",
    "TelegramNotifier",
    "render_message",
]
