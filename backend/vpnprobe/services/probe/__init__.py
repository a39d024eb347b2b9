# backend/vpnprobe/services/probe/__init__.py
from __future__ import annotations

"""
Probe service package.

This package provides:
- Process handles and the output buffer (process.py)
- The escalating shutdown sequence (shutdown.py)
- One bounded connection attempt (runner.py)
- Profile discovery (discovery.py)
- Check cycle orchestration (cycle.py)
- A high-level execute_cycle() convenience helper

The Telegram reporter lives under vpnprobe.services.reports and is wired
in at runtime by execute_cycle.
"""

from vpnprobe.config import Settings, get_settings

from .cycle import ReporterProtocol, run_check_cycle, run_forever  # noqa: F401
from .discovery import discover_configs  # noqa: F401
from .runner import OpenVPNRunner, RunnerProtocol  # noqa: F401
from .shutdown import ShutdownSequencer  # noqa: F401


def build_default_runner(settings: Settings) -> OpenVPNRunner:
    return OpenVPNRunner(
        settings.openvpn_binary,
        poll_interval=settings.poll_interval,
        shutdown=ShutdownSequencer(settings.shutdown_grace),
    )


def execute_cycle(settings: Settings | None = None) -> None:
    """
    High-level entrypoint to run one check cycle with the default wiring.

    This helper:
    - constructs the OpenVPN runner from settings
    - constructs the Telegram reporter from settings
    - calls run_check_cycle(settings, runner, reporter)

    It is safe to call from:
    - Celery tasks
    - CLI utilities
    - synchronous scripts
    """
    # Import inside the function to avoid circular imports at module load time.
    from vpnprobe.services.reports import TelegramReporter

    settings = settings or get_settings()
    runner = build_default_runner(settings)
    reporter = TelegramReporter.from_settings(settings)
    run_check_cycle(settings, runner, reporter)
