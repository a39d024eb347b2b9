from __future__ import annotations

"""backend/vpnprobe/services/probe/cycle.py

Check cycle orchestration.

Responsibilities:
- Discover the endpoint configs for this cycle
- Run one attempt per config, strictly one after another, with a fixed
  delay between attempts so only one client process exists at a time
- Classify failed attempts into AttemptOutcome values
- Hand the full outcome list to a reporter (which decides what to send)
- Repeat cycles on the configured interval (``run_forever``)

The cycle is *runner-agnostic*; anything implementing RunnerProtocol can be
plugged in. Failures are local to one attempt and never abort the cycle.
"""

import logging
import threading
import time
from typing import Callable, List, Protocol

from vpnprobe.config import Settings
from vpnprobe.models import AttemptOutcome, AttemptResult, EndpointConfig
from vpnprobe.services.diagnostics.error_classifier import (
    CONNECTION_FAILED,
    classify_attempt_failure,
    extract_relevant,
)
from vpnprobe.services.probe.discovery import discover_configs
from vpnprobe.services.probe.runner import RunnerProtocol

logger = logging.getLogger(__name__)


class ReporterProtocol(Protocol):
    """Receives the outcomes of a finished cycle."""

    def send_report(self, outcomes: List[AttemptOutcome]) -> bool:
        """Deliver a report; return False when there was nothing to send.

        Delivery problems are raised, not returned.
        """
        ...


def build_outcome(config: EndpointConfig, result: AttemptResult, tail_lines: int) -> AttemptOutcome:
    """Turn a raw AttemptResult into the report-ready outcome."""
    if result.success:
        return AttemptOutcome(config=config, success=True, raw_output=result.output)

    return AttemptOutcome(
        config=config,
        success=False,
        raw_output=result.output,
        error_category=classify_attempt_failure(result),
        relevant_excerpt=extract_relevant(result.output, tail_lines),
    )


def _attempt(runner: RunnerProtocol, config: EndpointConfig, settings: Settings) -> AttemptOutcome:
    try:
        result = runner.try_connect(config, settings.connect_timeout)
    except Exception as exc:  # noqa: BLE001
        # Convert any uncaught runner exception into a failed outcome.
        logger.exception("Runner %s crashed on %s", runner.name, config.name)
        return AttemptOutcome(
            config=config,
            success=False,
            error_category=CONNECTION_FAILED,
            relevant_excerpt=str(exc),
        )
    return build_outcome(config, result, settings.output_tail)


def run_check_cycle(
    settings: Settings,
    runner: RunnerProtocol,
    reporter: ReporterProtocol,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> List[AttemptOutcome]:
    """Run one full cycle and return the outcomes in discovery order."""
    try:
        configs = discover_configs(settings.vpn_config_dir)
    except OSError as exc:
        logger.error("Error reading configs: %s", exc)
        return []

    if not configs:
        logger.warning("No .ovpn profiles found in %s", settings.vpn_config_dir)

    outcomes: List[AttemptOutcome] = []
    for index, config in enumerate(configs):
        if index:
            # Give the previous client time to release its tun device.
            sleep(settings.attempt_delay)

        logger.info("Checking %s...", config.name)
        outcome = _attempt(runner, config, settings)
        if outcome.success:
            logger.info("Completed %s: success", config.name)
        else:
            logger.info("Completed %s: failed (%s)", config.name, outcome.error_category)
        outcomes.append(outcome)

    try:
        sent = reporter.send_report(outcomes)
    except Exception:  # noqa: BLE001
        logger.exception("Report delivery failed")
    else:
        if not sent:
            logger.info("All servers OK, no report sent")

    return outcomes


def run_forever(
    settings: Settings,
    runner: RunnerProtocol,
    reporter: ReporterProtocol,
    stop_event: threading.Event | None = None,
) -> None:
    """Run a cycle now, then every ``settings.check_interval`` seconds.

    Returns once ``stop_event`` is set.
    """
    stop_event = stop_event or threading.Event()
    while not stop_event.is_set():
        try:
            run_check_cycle(settings, runner, reporter, sleep=stop_event.wait)
        except Exception:  # noqa: BLE001
            logger.exception("Check failed")
        logger.info("Next check in %gs", settings.check_interval)
        stop_event.wait(settings.check_interval)
