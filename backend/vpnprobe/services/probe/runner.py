from __future__ import annotations

"""backend/vpnprobe/services/probe/runner.py

One bounded connection attempt with the OpenVPN client.

Responsibilities:
- Build the fixed client command line for an EndpointConfig
- Spawn the client with stdout/stderr merged into one buffer
- Race three signals: success marker seen, client exited, deadline reached
- Drive the client through the ShutdownSequencer before returning
- Return an AttemptResult; classification is left to the caller

Two helper threads run per attempt: a completion watcher and a poller that
checks the output every ``poll_interval`` seconds. Both report into one
queue, and the attempt blocks on that queue with the deadline as timeout.

Error keywords in the output never end an attempt early, so a success
marker that arrives after a transient TLS or auth warning is not missed.

A client that exits on its own with code 0 and no marker counts as a
success; any non-zero exit is a failure classified later from the text.
"""

import enum
import logging
import queue
import threading
import time
from datetime import datetime, timezone
from typing import Callable, List, Protocol

from vpnprobe.models import AttemptResult, EndpointConfig
from vpnprobe.services.diagnostics.error_classifier import (
    REASON_EXIT,
    REASON_SPAWN,
    REASON_TIMEOUT,
)
from vpnprobe.services.probe.process import ProcessHandle, SubprocessHandle
from vpnprobe.services.probe.shutdown import ShutdownSequencer

logger = logging.getLogger(__name__)

SUCCESS_MARKERS = ("PUSH_REPLY", "Initialization Sequence Completed")
DEFAULT_POLL_INTERVAL = 0.5
DRAIN_TIMEOUT = 1.0


class _Signal(str, enum.Enum):
    MARKER = "MARKER"
    EXITED = "EXITED"


class _Verdict(str, enum.Enum):
    SUCCESS = "SUCCESS"
    TIMEOUT = "TIMEOUT"
    EXITED = "EXITED"


def has_success_marker(output: str) -> bool:
    return any(marker in output for marker in SUCCESS_MARKERS)


def build_command(binary: str, config: EndpointConfig) -> List[str]:
    """Return the client command line for ``config``.

    Credentials are never cached, only a single connect retry is allowed,
    and pushed default routes are ignored so an attempt leaves the host's
    routing table alone.
    """
    return [
        binary,
        "--config",
        config.path,
        "--auth-nocache",
        "--connect-retry",
        "1",
        "--connect-retry-max",
        "1",
        "--verb",
        "4",
        "--pull-filter",
        "ignore",
        "redirect-gateway",
    ]


class RunnerProtocol(Protocol):
    """Minimal interface the check cycle needs from a runner."""

    name: str

    def try_connect(self, config: EndpointConfig, timeout: float) -> AttemptResult:
        """Make one bounded attempt against ``config``.

        Implementations must not raise for attempt failures and must not
        leave a client process running after returning.
        """
        ...


class OpenVPNRunner:
    """RunnerProtocol implementation for the OpenVPN command line client."""

    name = "openvpn"

    def __init__(
        self,
        binary: str = "openvpn",
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        shutdown: ShutdownSequencer | None = None,
        spawn: Callable[[List[str]], ProcessHandle] = SubprocessHandle.start,
    ) -> None:
        self.binary = binary or "openvpn"
        self.poll_interval = poll_interval
        self.shutdown = shutdown or ShutdownSequencer()
        self._spawn = spawn

    def build_command(self, config: EndpointConfig) -> List[str]:
        return build_command(self.binary, config)

    # --- helper threads ---------------------------------------------------

    def _watch_exit(self, handle: ProcessHandle, signals: queue.Queue, stop: threading.Event) -> None:
        while not stop.is_set():
            if handle.wait(self.poll_interval):
                signals.put(_Signal.EXITED)
                return

    def _poll_markers(self, handle: ProcessHandle, signals: queue.Queue, stop: threading.Event) -> None:
        while not stop.wait(self.poll_interval):
            if has_success_marker(handle.snapshot()):
                signals.put(_Signal.MARKER)
                return

    # --- decision ---------------------------------------------------------

    def _await_verdict(self, handle: ProcessHandle, signals: queue.Queue, deadline: float) -> _Verdict:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return _Verdict.TIMEOUT
        try:
            signal = signals.get(timeout=remaining)
        except queue.Empty:
            return _Verdict.TIMEOUT

        # An elapsed deadline wins over anything observed after it.
        if time.monotonic() >= deadline:
            return _Verdict.TIMEOUT

        if signal is _Signal.MARKER:
            return _Verdict.SUCCESS

        # Exited: the marker may still be sitting in the pipe.
        handle.drain(DRAIN_TIMEOUT)
        if has_success_marker(handle.snapshot()):
            return _Verdict.SUCCESS
        return _Verdict.EXITED

    def try_connect(self, config: EndpointConfig, timeout: float) -> AttemptResult:
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        cmd = self.build_command(config)
        started_at = datetime.now(timezone.utc)
        deadline = time.monotonic() + timeout

        def _result(**kwargs) -> AttemptResult:
            finished_at = datetime.now(timezone.utc)
            return AttemptResult(
                command=cmd,
                timeout_seconds=timeout,
                started_at=started_at,
                finished_at=finished_at,
                duration_seconds=(finished_at - started_at).total_seconds(),
                **kwargs,
            )

        try:
            handle = self._spawn(cmd)
        except OSError as exc:
            logger.error("Could not start %s for %s: %s", self.binary, config.name, exc)
            return _result(
                success=False,
                output="",
                error=str(exc),
                failure_reason=REASON_SPAWN,
            )

        logger.debug("Started %s (pid %s) for %s", self.binary, handle.pid, config.name)

        signals: queue.Queue = queue.Queue()
        stop = threading.Event()
        helpers = [
            threading.Thread(target=self._watch_exit, args=(handle, signals, stop), daemon=True),
            threading.Thread(target=self._poll_markers, args=(handle, signals, stop), daemon=True),
        ]
        for thread in helpers:
            thread.start()

        try:
            verdict = self._await_verdict(handle, signals, deadline)
            stop.set()

            if verdict is _Verdict.EXITED:
                rc = handle.return_code
                output = handle.snapshot()
                if rc == 0:
                    return _result(success=True, output=output, return_code=rc)
                return _result(
                    success=False,
                    output=output,
                    error=f"client exited with code {rc}",
                    failure_reason=REASON_EXIT,
                    return_code=rc,
                )

            step = self.shutdown.stop(handle)
            logger.debug("Shutdown of %s finished with %s", config.name, step.value)
            handle.drain(DRAIN_TIMEOUT)
            output = handle.snapshot()

            if verdict is _Verdict.SUCCESS:
                return _result(success=True, output=output, return_code=handle.return_code)

            return _result(
                success=False,
                output=output,
                error=f"no success marker within {timeout:g}s",
                failure_reason=REASON_TIMEOUT,
                return_code=handle.return_code,
            )
        except (KeyboardInterrupt, SystemExit):
            logger.warning("Attempt for %s interrupted; killing client", config.name)
            handle.kill()
            raise
        finally:
            stop.set()
            if handle.is_running():
                handle.kill()
                handle.wait(DRAIN_TIMEOUT)
            handle.close()
            for thread in helpers:
                thread.join(self.poll_interval * 2)
