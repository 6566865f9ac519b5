"""
Telegram transport: long-polls the Bot API and delivers replies.
Built on requests, no bot framework dependency.
"""

import logging
import requests

from summarybot.core.cancellation import CancelScope
from summarybot.core.constants import (
    TELEGRAM_API_BASE, TELEGRAM_POLL_TIMEOUT_SEC, TELEGRAM_MAX_MESSAGE_LEN,
)

logger = logging.getLogger(__name__)

_ERROR_RETRY_DELAY_SEC = 5


class TelegramError(Exception):
    """Raised when the Bot API rejects a request."""

    def __init__(self, status_code: int, description: str):
        self.status_code = status_code
        self.description = description
        super().__init__(f"telegram {status_code}: {description}")


def split_message(text: str, limit: int = TELEGRAM_MAX_MESSAGE_LEN) -> list[str]:
    """
    Split text into chunks no longer than `limit`, preferring paragraph
    breaks, then line breaks, then hard cuts.
    """
    if len(text) <= limit:
        return [text]

    chunks = []
    rest = text
    while len(rest) > limit:
        window = rest[:limit]
        cut = window.rfind("\n\n")
        if cut <= 0:
            cut = window.rfind("\n")
        if cut <= 0:
            cut = limit
        chunks.append(rest[:cut].rstrip())
        rest = rest[cut:].lstrip("\n")
    if rest:
        chunks.append(rest)
    return chunks


class TelegramBot:
    """Receives text messages and hands them to the job queue manager."""

    def __init__(self, token: str, api_base: str = TELEGRAM_API_BASE,
                 session: requests.Session | None = None):
        self.base_url = f"{api_base.rstrip('/')}/bot{token}"
        self.session = session or requests.Session()
        self.manager = None
        self._offset = 0

    # ── Bot API calls ─────────────────────────────────────────────────

    def _call(self, method: str, params: dict, http_timeout: float):
        resp = self.session.post(f"{self.base_url}/{method}", json=params, timeout=http_timeout)
        try:
            body = resp.json()
        except ValueError:
            raise TelegramError(resp.status_code, resp.text[:300] or "No response body")
        if resp.status_code != 200 or not body.get("ok"):
            raise TelegramError(resp.status_code, body.get("description", "unknown error"))
        return body.get("result")

    def get_updates(self) -> list:
        updates = self._call("getUpdates", {
            "offset": self._offset,
            "timeout": TELEGRAM_POLL_TIMEOUT_SEC,
            "allowed_updates": ["message"],
        }, http_timeout=TELEGRAM_POLL_TIMEOUT_SEC + 10)
        for update in updates or []:
            self._offset = max(self._offset, update.get("update_id", 0) + 1)
        return updates or []

    def send_message(self, chat_id: int, text: str, markdown: bool = False):
        """
        Send text to a chat, splitting long messages. Markdown messages that
        Telegram cannot parse are resent as plain text.
        """
        for chunk in split_message(text):
            params = {
                "chat_id": chat_id,
                "text": chunk,
                "disable_web_page_preview": True,
            }
            if markdown:
                params["parse_mode"] = "Markdown"
            try:
                self._call("sendMessage", params, http_timeout=30)
            except TelegramError as e:
                if markdown and e.status_code == 400:
                    logger.warning("Markdown rejected, resending as plain text chat_id=%s", chat_id)
                    params.pop("parse_mode")
                    self._call("sendMessage", params, http_timeout=30)
                else:
                    raise

    # ── Polling loop ──────────────────────────────────────────────────

    def handle_update(self, update: dict):
        message = update.get("message") or {}
        chat = message.get("chat") or {}
        text = (message.get("text") or "").strip()
        if not chat.get("id") or not text:
            return
        self.manager.submit(chat["id"], text)

    def run(self, scope: CancelScope):
        """Poll for updates until the scope is cancelled."""
        if self.manager is None:
            raise RuntimeError("TelegramBot.manager must be set before run()")

        logger.info("Telegram polling started")
        while not scope.cancelled:
            try:
                updates = self.get_updates()
            except (requests.exceptions.RequestException, TelegramError) as e:
                # Request errors embed the URL, which carries the token
                logger.error("Failed to fetch updates: %s", type(e).__name__)
                if scope.wait(_ERROR_RETRY_DELAY_SEC):
                    break
                continue

            for update in updates:
                try:
                    self.handle_update(update)
                except Exception:
                    logger.error("Failed to handle update %s", update.get("update_id"), exc_info=True)
        logger.info("Telegram polling stopped")
