# backend/vpnprobe/main.py
from __future__ import annotations

"""
Command line entrypoint: ``python -m vpnprobe``.

This module depends on:
- vpnprobe.config.get_settings for configuration
- vpnprobe.services.probe for the runner and the check loop
- vpnprobe.services.reports for Telegram delivery

SIGTERM is turned into a host-level shutdown, the same as Ctrl+C: a client
that is mid-attempt gets force-killed and the loop exits.
"""

import logging
import signal
import sys
import threading

from vpnprobe.config import get_settings
from vpnprobe.services.probe import build_default_runner, run_forever
from vpnprobe.services.reports import TelegramReporter

logger = logging.getLogger("vpnprobe")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _raise_interrupt(signum, frame) -> None:
    raise KeyboardInterrupt


def main() -> int:
    settings = get_settings()
    configure_logging(settings.log_level)

    if not settings.telegram_configured:
        logger.error("TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID must be set")
        return 1

    runner = build_default_runner(settings)
    reporter = TelegramReporter.from_settings(settings)
    stop_event = threading.Event()

    signal.signal(signal.SIGTERM, _raise_interrupt)
    logger.info(
        "Checking profiles in %s every %gs (timeout %gs per server)",
        settings.vpn_config_dir,
        settings.check_interval,
        settings.connect_timeout,
    )
    try:
        run_forever(settings, runner, reporter, stop_event)
    except KeyboardInterrupt:
        stop_event.set()
        logger.info("Shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
