from __future__ import annotations

"""backend/vpnprobe/services/probe/shutdown.py

Escalating shutdown for a running VPN client.

An abrupt kill can leave the server-side session registered as active, so
the client is first asked to disconnect politely:

1. interrupt, then wait up to ``grace_window``
2. terminate, then wait up to ``grace_window / 2``
3. kill unconditionally

The sequence never raises. Errors while signalling (typically the process
exiting between the liveness check and the signal) are logged and ignored.
"""

import enum
import logging

from vpnprobe.services.probe.process import ProcessHandle, SignalLevel

logger = logging.getLogger(__name__)

DEFAULT_GRACE_WINDOW = 5.0


class ShutdownStep(str, enum.Enum):
    NOT_RUNNING = "NOT_RUNNING"
    INTERRUPTED = "INTERRUPTED"
    TERMINATED = "TERMINATED"
    KILLED = "KILLED"


class ShutdownSequencer:
    """Applies the interrupt / terminate / kill escalation to a handle."""

    def __init__(self, grace_window: float = DEFAULT_GRACE_WINDOW) -> None:
        self.grace_window = grace_window

    def stop(self, handle: ProcessHandle | None, grace_window: float | None = None) -> ShutdownStep:
        if handle is None or not handle.is_running():
            return ShutdownStep.NOT_RUNNING

        window = self.grace_window if grace_window is None else grace_window
        steps = (
            (SignalLevel.INTERRUPT, window, ShutdownStep.INTERRUPTED),
            (SignalLevel.TERMINATE, window / 2, ShutdownStep.TERMINATED),
        )
        for level, wait_for, step in steps:
            try:
                handle.signal(level)
            except OSError as exc:
                logger.debug("Signal %s to pid %s failed: %s", level.value, handle.pid, exc)
            if handle.wait(wait_for):
                logger.debug("Client pid %s stopped after %s", handle.pid, level.value)
                return step
            logger.info(
                "Client pid %s still running %.1fs after %s; escalating",
                handle.pid,
                wait_for,
                level.value,
            )

        try:
            handle.kill()
        except OSError as exc:
            logger.debug("Kill of pid %s failed: %s", handle.pid, exc)
        handle.wait(window)
        logger.warning("Client pid %s was force-killed", handle.pid)
        return ShutdownStep.KILLED
