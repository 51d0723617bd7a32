"""Mailgun email and Telegram chat channels for error alerts."""

from __future__ import annotations

import html
from typing import Optional

import requests

from hotel_api.config import is_placeholder
from hotel_api.notifications.base import ChannelError, NotificationChannel, NotificationEvent
from utils.logging_utils import get_tagged_logger, mask_secret_url

logger = get_tagged_logger(__name__, tag="notifications/channels")

session = requests.Session()

MAILGUN_API_URL = "https://api.mailgun.net/v3/{domain}/messages"
TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"
SITE_NAME = "Hotel Ensueños"


class MailgunChannel(NotificationChannel):
    """HTML error reports sent through the Mailgun messages API."""

    name = "email"

    def __init__(
        self,
        api_key: Optional[str],
        domain: Optional[str],
        to_email: Optional[str],
        *,
        sender_email: Optional[str] = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key
        self.domain = domain
        self.to_email = to_email
        self.sender_email = sender_email or (f"errors@{domain}" if domain else None)

    @property
    def configured(self) -> bool:
        return not any(is_placeholder(v) for v in (self.api_key, self.domain, self.to_email))

    def subject(self, event: NotificationEvent) -> str:
        prefix = "🚨" if event.critical else "⚠️"
        return f"{prefix} Error Report - {event.context}"

    def render(self, event: NotificationEvent) -> str:
        e = html.escape
        stack_block = ""
        if event.stack:
            stack_block = (
                '<div style="background: #f1f3f4; padding: 15px; border-radius: 4px;">'
                '<h4 style="margin-top: 0;">Stack Trace:</h4>'
                f'<pre style="white-space: pre-wrap; font-size: 12px;">{e(event.stack)}</pre>'
                "</div>"
            )
        return (
            '<html><body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
            f'<h2 style="color: #dc3545;">{"🚨" if event.critical else "⚠️"} Error Report</h2>'
            f"<p><strong>Context:</strong> {e(event.context)}</p>"
            f"<p><strong>Error:</strong> {e(event.message)}</p>"
            f"<p><strong>Level:</strong> {event.level}</p>"
            f"<p><strong>Timestamp:</strong> {event.timestamp.isoformat()}</p>"
            f"<p><strong>Error ID:</strong> {e(event.fingerprint)}</p>"
            f"{stack_block}"
            f'<p style="color: #6c757d; font-size: 14px;">Generated automatically by the {SITE_NAME} data API.</p>'
            "</body></html>"
        )

    def _deliver(self, event: NotificationEvent) -> None:
        url = MAILGUN_API_URL.format(domain=self.domain)
        try:
            resp = session.post(
                url,
                auth=("api", self.api_key),
                data={
                    "from": f"{SITE_NAME} <{self.sender_email}>",
                    "to": self.to_email,
                    "subject": self.subject(event),
                    "html": self.render(event),
                },
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise ChannelError(f"Mailgun request failed: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            raise ChannelError(f"Mailgun API error: {resp.status_code} {(resp.text or '')[:200]}")
        logger.info(f"Error report {event.fingerprint} emailed to admin")


class TelegramChannel(NotificationChannel):
    """Markdown alerts posted to a Telegram chat via the Bot API."""

    name = "telegram"

    def __init__(self, bot_token: Optional[str], chat_id: Optional[str], **kwargs) -> None:
        super().__init__(**kwargs)
        self.bot_token = bot_token
        self.chat_id = chat_id

    @property
    def configured(self) -> bool:
        return not (is_placeholder(self.bot_token) or is_placeholder(self.chat_id))

    def render(self, event: NotificationEvent) -> str:
        emoji = "🚨" if event.critical else "⚠️"
        return (
            f"{emoji} *{SITE_NAME} Error*\n\n"
            f"*Context:* {event.context}\n"
            f"*Error:* {event.message}\n"
            f"*Timestamp:* {event.timestamp.isoformat()}\n"
            f"*ID:* {event.fingerprint}\n"
            f"*Level:* *{event.level}*"
        )

    def _deliver(self, event: NotificationEvent) -> None:
        url = TELEGRAM_API_URL.format(token=self.bot_token)
        try:
            resp = session.post(
                url,
                json={
                    "chat_id": self.chat_id,
                    "text": self.render(event),
                    "parse_mode": "Markdown",
                    # silent for warnings
                    "disable_notification": not event.critical,
                },
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise ChannelError(f"Telegram request to {mask_secret_url(url)} failed: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            raise ChannelError(f"Telegram API error: {resp.status_code} {(resp.text or '')[:200]}")
        logger.info(f"Error {event.fingerprint} posted to Telegram")
