"""
Telegram push notifications with bounded retry.

Usage:
    from season_push.telegram_notifier import Notifier, TelegramTransport

    notifier = Notifier(TelegramTransport(BOT_TOKEN, CHAT_ID))
    notifier.send("경기종료")   # never raises

Delivery is best effort: every failure (network error, timeout, non-2xx) is
logged and retried after UNIT_MS * attempt, up to max_attempts (at least 2).
When all attempts fail the message is dropped with an ERROR log line.
"""
from __future__ import annotations

import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from typing import Callable, Protocol, Tuple

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org/bot{token}/sendMessage"

# Every message is retried at least once
MIN_ATTEMPTS = 2


class MessageTransport(Protocol):
    """Outbound channel: send text to a fixed destination."""

    is_configured: bool

    def send_text(self, text: str) -> Tuple[bool, str]:
        ...


class TelegramTransport:
    """Single sendMessage call to the Bot API."""

    def __init__(self, bot_token: str, chat_id: str, timeout: float = 10.0) -> None:
        self.bot_token = (bot_token or "").strip()
        self.chat_id = (chat_id or "").strip()
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.bot_token) and bool(self.chat_id)

    def send_text(self, text: str) -> Tuple[bool, str]:
        """
        POST the message.

        Returns:
            (ok, body) - ok is True for a 2xx response, body is the response
            text or "HTTP <code> <body>" on a non-success status

        Raises:
            urllib.error.URLError, OSError: transport-level failures
        """
        data = urllib.parse.urlencode({"chat_id": self.chat_id, "text": text}).encode("utf-8")
        req = urllib.request.Request(
            API_URL.format(token=self.bot_token),
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read().decode("utf-8", errors="replace")
                return 200 <= resp.status < 300, body
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace") if e.fp is not None else ""
            return False, f"HTTP {e.code} {body}"


class Notifier:
    """Fire-and-forget sender: retries, logs, never raises."""

    def __init__(
        self,
        transport: MessageTransport,
        max_attempts: int = 5,
        backoff_unit_ms: int = 250,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.transport = transport
        self.max_attempts = max(MIN_ATTEMPTS, max_attempts)
        self.backoff_unit_ms = backoff_unit_ms
        self.sleep = sleep

    def send(self, message: str) -> None:
        """Deliver message, retrying on any failure. Returns normally in all cases."""
        if not self.transport.is_configured:
            logger.error(f"[Telegram] BotToken or ChatId is empty. message={message}")
            return

        for attempt in range(1, self.max_attempts + 1):
            try:
                ok, body = self.transport.send_text(message)
                if ok:
                    logger.debug(f"[Telegram] Sent attempt={attempt}/{self.max_attempts} message={message}")
                    return
                logger.error(f"[Telegram] Send failed ({body}) attempt={attempt}/{self.max_attempts}")
            except Exception as e:
                logger.error(f"[Telegram] Send exception attempt={attempt}/{self.max_attempts} ex={e!r}")

            if attempt < self.max_attempts:
                self.sleep(self.backoff_unit_ms * attempt / 1000.0)

        logger.error(f"[Telegram] Final send failed. message={message}")


class NullTransport:
    """Transport that only logs; used with --no-notify."""

    is_configured = True

    def send_text(self, text: str) -> Tuple[bool, str]:
        logger.info(f"[Telegram] (disabled) {text}")
        return True, ""
