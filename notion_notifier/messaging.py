import math
from html import escape
from typing import Any, Dict, Optional

import requests
from slack_sdk.errors import SlackApiError
from slack_sdk.web import WebClient

from notion_notifier.config import Settings
from notion_notifier.records import NotificationRecord

TELEGRAM_API_BASE = "https://api.telegram.org"

DEFAULT_TITLE = "No title"
DEFAULT_BUSINESS = "—"
DEFAULT_TIME = "—"

DEFAULT_TEMPLATE = (
    "Reminder: {title}\n"
    "Business: {business}\n"
    "Time: {time}\n"
    "\n"
    "This is an automated reminder."
)


class DeliveryError(Exception):
    """Sending a message failed. ``payload`` holds the endpoint's error body, if any."""

    def __init__(self, message: str, payload: Optional[Any] = None):
        super().__init__(message)
        self.payload = payload


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------
def _slack_escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def format_message(record: NotificationRecord, markup: str = "html") -> str:
    """
    Build the message text for a record.

    A non-empty custom template wins and is sent verbatim. Otherwise the
    default template is filled in, with placeholders for missing fields.
    """
    if record.custom_message:
        return record.custom_message

    title = record.title or DEFAULT_TITLE
    business = record.business or DEFAULT_BUSINESS
    when = record.notify_time or DEFAULT_TIME

    if markup == "mrkdwn":
        esc = _slack_escape
        bold_title = f"*{esc(title)}*"
    else:
        esc = lambda s: escape(s, quote=False)  # noqa: E731
        bold_title = f"<b>{esc(title)}</b>"

    return DEFAULT_TEMPLATE.format(title=bold_title, business=esc(business), time=esc(when))


# ---------------------------------------------------------------------------
# Notifiers
# ---------------------------------------------------------------------------
class TelegramNotifier:
    markup = "html"

    def __init__(self, token: str, chat_id: str, timeout: float = 15.0, session: Optional[requests.Session] = None):
        self.url = f"{TELEGRAM_API_BASE}/bot{token}/sendMessage"
        self.chat_id = chat_id
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, text: str) -> Dict[str, Any]:
        payload = {"chat_id": self.chat_id, "text": text, "parse_mode": "HTML"}
        try:
            r = self.session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise DeliveryError(str(exc)) from exc

        try:
            data = r.json()
        except ValueError:
            data = {"ok": False, "description": r.text}

        if r.status_code != 200 or not data.get("ok", False):
            description = data.get("description") or f"HTTP {r.status_code}"
            raise DeliveryError(f"Telegram sendMessage failed: {description}", payload=data)
        return data


class SlackNotifier:
    markup = "mrkdwn"

    def __init__(self, token: str, channel: str, timeout: float = 15.0, client: Optional[WebClient] = None):
        self.client = client or WebClient(token=token, timeout=math.ceil(timeout))
        self.channel = channel

    def send(self, text: str) -> Dict[str, Any]:
        try:
            response = self.client.chat_postMessage(channel=self.channel, text=text, mrkdwn=True)
        except SlackApiError as exc:
            error = exc.response.get("error") if exc.response is not None else None
            payload = exc.response.data if exc.response is not None else None
            raise DeliveryError(f"Slack chat_postMessage failed: {error or exc}", payload=payload) from exc
        except Exception as exc:
            raise DeliveryError(str(exc)) from exc
        return response.data


def build_notifier(settings: Settings):
    """Create the notifier selected by MESSAGING_PROVIDER."""
    if settings.messaging_provider == "slack":
        return SlackNotifier(settings.slack_bot_token, settings.slack_channel, settings.request_timeout)
    return TelegramNotifier(settings.telegram_token, settings.telegram_chat_id, settings.request_timeout)
