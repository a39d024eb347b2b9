# backend/vpnprobe/services/reports/telegram.py
from __future__ import annotations

"""
Telegram delivery for cycle failure reports.

The message itself comes from markdown_builder; this module only posts it
to the Bot API ``sendMessage`` endpoint. A cycle without failures sends
nothing. Delivery problems raise ReportDeliveryError so the cycle can log
them without mistaking them for "nothing to report".
"""

import logging
from typing import List

import requests

from vpnprobe.config import Settings
from vpnprobe.models import AttemptOutcome
from vpnprobe.services.reports.markdown_builder import build_failure_report

logger = logging.getLogger(__name__)


class ReportDeliveryError(RuntimeError):
    """Raised when Telegram did not accept the report."""


class TelegramReporter:
    """ReporterProtocol implementation posting MarkdownV2 to a Telegram chat."""

    def __init__(
        self,
        token: str,
        chat_id: int,
        *,
        api_url: str = "https://api.telegram.org",
        excerpt_limit: int = 3000,
        message_limit: int = 4000,
        request_timeout: float = 10,
    ) -> None:
        self.token = token
        self.chat_id = chat_id
        self.api_url = api_url.rstrip("/")
        self.excerpt_limit = excerpt_limit
        self.message_limit = message_limit
        self.request_timeout = request_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "TelegramReporter":
        if not settings.telegram_configured:
            raise ValueError("TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID must be set")
        return cls(
            settings.telegram_bot_token,
            settings.telegram_chat_id,
            api_url=settings.telegram_api_url,
            excerpt_limit=settings.excerpt_limit,
            message_limit=settings.output_limit,
            request_timeout=settings.telegram_request_timeout,
        )

    @property
    def send_message_url(self) -> str:
        return f"{self.api_url}/bot{self.token}/sendMessage"

    def send_report(self, outcomes: List[AttemptOutcome]) -> bool:
        message = build_failure_report(
            outcomes,
            excerpt_limit=self.excerpt_limit,
            message_limit=self.message_limit,
        )
        if message is None:
            return False

        try:
            response = requests.post(
                self.send_message_url,
                json={
                    "chat_id": self.chat_id,
                    "text": message,
                    "parse_mode": "MarkdownV2",
                },
                timeout=self.request_timeout,
            )
        except requests.RequestException as exc:
            raise ReportDeliveryError(f"Telegram request failed: {exc}") from exc

        if not response.ok:
            raise ReportDeliveryError(
                f"Telegram rejected the report ({response.status_code}): {response.text}"
            )

        logger.info("Error report sent successfully")
        return True
