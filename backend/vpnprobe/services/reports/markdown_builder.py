# backend/vpnprobe/services/reports/markdown_builder.py
from __future__ import annotations

"""
Markdown report generation for check cycles.

This module is deliberately pure and side-effect free: it takes the
AttemptOutcome list of one cycle and returns a Telegram MarkdownV2 string.

It does **not** hit the network or any external service.
"""

from typing import Iterable, List

from vpnprobe.models import AttemptOutcome

# Characters that must be escaped outside code blocks in MarkdownV2.
_SPECIAL_CHARS = "\\_*[]()~`>#+-=|{}.!"

TRUNCATED_NOTICE = "\\.\\.\\. \\(truncated\\)"


def escape_markdown(text: str) -> str:
    """Escape ``text`` for use in MarkdownV2 body text."""
    return "".join(f"\\{ch}" if ch in _SPECIAL_CHARS else ch for ch in text)


def _escape_code(text: str) -> str:
    # Inside pre blocks only backslash and backtick are special; backticks
    # are replaced so the fence can never be closed early.
    return text.replace("\\", "\\\\").replace("`", "'")


def truncate(text: str, limit: int) -> str:
    if limit <= 0:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit]


def _failure_block(outcome: AttemptOutcome, excerpt_limit: int) -> str:
    excerpt = _escape_code(truncate(outcome.relevant_excerpt, excerpt_limit))
    return "\n".join(
        [
            f"❌ *{escape_markdown(outcome.config.name)}*",
            f"Error: {escape_markdown(outcome.error_category)}",
            "",
            "```",
            excerpt,
            "```",
        ]
    )


def failed_outcomes(outcomes: Iterable[AttemptOutcome]) -> List[AttemptOutcome]:
    return [o for o in outcomes if not o.success]


def build_failure_report(
    outcomes: List[AttemptOutcome],
    *,
    excerpt_limit: int = 3000,
    message_limit: int = 4000,
) -> str | None:
    """
    Build the failure report for one cycle.

    Returns None when every endpoint succeeded (nothing to report). When the
    message would exceed ``message_limit`` characters, trailing failure
    blocks are dropped and a truncation notice is appended instead of
    cutting through a code block.
    """
    failed = failed_outcomes(outcomes)
    if not failed:
        return None

    header = f"*VPN Error Report*\n\nFailed: {len(failed)}/{len(outcomes)}"
    message = header
    reserve = len(TRUNCATED_NOTICE) + 2

    for idx, outcome in enumerate(failed):
        block = _failure_block(outcome, excerpt_limit)
        candidate = f"{message}\n\n{block}"
        is_last = idx == len(failed) - 1
        budget = message_limit if is_last else message_limit - reserve
        if len(candidate) > budget:
            return f"{message}\n\n{TRUNCATED_NOTICE}"
        message = candidate

    return message
