# backend/vpnprobe/services/reports/__init__.py
from __future__ import annotations

"""
Reporting utilities for check cycles.

This package provides:
- Markdown (MarkdownV2) failure report generation for a cycle
- Telegram delivery of that report

High-level helpers exposed:

- build_failure_report(outcomes) -> str | None
- TelegramReporter.from_settings(settings).send_report(outcomes) -> bool
"""

from .markdown_builder import (  # noqa: F401
    build_failure_report,
    escape_markdown,
)
from .telegram import (  # noqa: F401
    ReportDeliveryError,
    TelegramReporter,
)
