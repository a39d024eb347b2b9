"""Tests for the failure report and Telegram delivery."""

from __future__ import annotations

import pytest
import requests

from vpnprobe.config import Settings
from vpnprobe.models import AttemptOutcome, EndpointConfig
from vpnprobe.services.reports import telegram as telegram_module
from vpnprobe.services.reports.markdown_builder import (
    TRUNCATED_NOTICE,
    build_failure_report,
    escape_markdown,
)
from vpnprobe.services.reports.telegram import ReportDeliveryError, TelegramReporter


def _ok(name: str) -> AttemptOutcome:
    return AttemptOutcome(config=EndpointConfig(name=name, path=f"/{name}.ovpn"), success=True)


def _failed(name: str, category: str = "Connection failed", excerpt: str = "ERROR: boom") -> AttemptOutcome:
    return AttemptOutcome(
        config=EndpointConfig(name=name, path=f"/{name}.ovpn"),
        success=False,
        error_category=category,
        relevant_excerpt=excerpt,
    )


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = '{"ok":true}'):
        self.status_code = status_code
        self.text = text

    @property
    def ok(self) -> bool:
        return self.status_code < 400


def test_no_report_when_everything_succeeded() -> None:
    assert build_failure_report([_ok("a"), _ok("b")]) is None
    assert build_failure_report([]) is None


def test_report_lists_only_failures() -> None:
    report = build_failure_report([_ok("a"), _failed("b", "Authentication failed", "AUTH_FAILED")])

    assert report is not None
    assert report.startswith("*VPN Error Report*\n\nFailed: 1/2")
    assert "❌ *b*" in report
    assert "Error: Authentication failed" in report
    assert "```\nAUTH_FAILED\n```" in report
    assert "*a*" not in report


def test_names_and_categories_are_escaped() -> None:
    report = build_failure_report([_failed("de-fra_01.v2", "Timeout exceeded (90s)")])

    assert "*de\\-fra\\_01\\.v2*" in report
    assert "Error: Timeout exceeded \\(90s\\)" in report


def test_backticks_in_excerpt_cannot_close_the_code_block() -> None:
    report = build_failure_report([_failed("a", excerpt="bad ```value``` C:\\ovpn")])

    assert "bad '''value''' C:\\\\ovpn" in report


def test_excerpt_is_truncated_to_limit() -> None:
    report = build_failure_report([_failed("a", excerpt="x" * 100)], excerpt_limit=10)

    assert "```\n" + "x" * 10 + "\n```" in report


def test_long_reports_drop_trailing_blocks() -> None:
    outcomes = [_failed(f"server{i}", excerpt="E" * 200) for i in range(20)]

    report = build_failure_report(outcomes, message_limit=1000)

    assert len(report) <= 1000
    assert report.endswith(TRUNCATED_NOTICE)
    assert "Failed: 20/20" in report
    assert report.count("```") % 2 == 0


def test_escape_markdown_escapes_backslash() -> None:
    assert escape_markdown("a\\b!") == "a\\\\b\\!"


def test_reporter_posts_markdown_message(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict] = []

    def fake_post(url, json=None, timeout=None):
        calls.append({"url": url, "json": json, "timeout": timeout})
        return FakeResponse()

    monkeypatch.setattr(telegram_module.requests, "post", fake_post)
    reporter = TelegramReporter("123:abc", 42, request_timeout=3)

    sent = reporter.send_report([_failed("a")])

    assert sent is True
    assert calls[0]["url"] == "https://api.telegram.org/bot123:abc/sendMessage"
    assert calls[0]["json"]["chat_id"] == 42
    assert calls[0]["json"]["parse_mode"] == "MarkdownV2"
    assert calls[0]["json"]["text"].startswith("*VPN Error Report*")
    assert calls[0]["timeout"] == 3


def test_reporter_sends_nothing_without_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_post(*args, **kwargs):
        raise AssertionError("should not be called")

    monkeypatch.setattr(telegram_module.requests, "post", fake_post)

    assert TelegramReporter("t", 1).send_report([_ok("a")]) is False


def test_reporter_raises_on_rejected_message(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        telegram_module.requests,
        "post",
        lambda *args, **kwargs: FakeResponse(400, "Bad Request: can't parse entities"),
    )

    with pytest.raises(ReportDeliveryError, match="400"):
        TelegramReporter("t", 1).send_report([_failed("a")])


def test_reporter_wraps_network_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_post(*args, **kwargs):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(telegram_module.requests, "post", fake_post)

    with pytest.raises(ReportDeliveryError, match="unreachable"):
        TelegramReporter("t", 1).send_report([_failed("a")])


def test_from_settings_requires_credentials() -> None:
    with pytest.raises(ValueError):
        TelegramReporter.from_settings(Settings(telegram_bot_token=None, telegram_chat_id=None))


def test_from_settings_uses_limits() -> None:
    settings = Settings(telegram_bot_token="t", telegram_chat_id=7, output_limit=1234, excerpt_limit=99)

    reporter = TelegramReporter.from_settings(settings)

    assert reporter.chat_id == 7
    assert reporter.message_limit == 1234
    assert reporter.excerpt_limit == 99
