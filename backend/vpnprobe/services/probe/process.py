from __future__ import annotations

"""backend/vpnprobe/services/probe/process.py

Process handles for the external VPN client.

This module provides:

- OutputBuffer: append-only, lock-protected byte buffer shared between the
  output pump thread and the poller
- SignalLevel: the two polite stop requests the shutdown sequence can send
- ProcessHandle: the capability interface the runner and the shutdown
  sequence are written against
- SubprocessHandle: ``subprocess.Popen`` implementation with stdout and
  stderr merged into a single OutputBuffer

Platform differences (POSIX signals vs. Windows console events) are kept
inside SubprocessHandle so the escalation policy stays platform-agnostic.
"""

import enum
import logging
import os
import signal
import subprocess
import threading
from typing import List, Protocol

logger = logging.getLogger(__name__)

_IS_WINDOWS = os.name == "nt"
_READ_CHUNK = 4096


class OutputBuffer:
    """Append-only byte accumulator with consistent snapshots."""

    def __init__(self) -> None:
        self._data = bytearray()
        self._lock = threading.Lock()

    def append(self, chunk: bytes) -> None:
        with self._lock:
            self._data.extend(chunk)

    def snapshot(self) -> str:
        with self._lock:
            data = bytes(self._data)
        return data.decode("utf-8", errors="replace")

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class SignalLevel(str, enum.Enum):
    INTERRUPT = "INTERRUPT"
    TERMINATE = "TERMINATE"


class ProcessHandle(Protocol):
    """Minimal interface over a running client process."""

    pid: int | None

    def snapshot(self) -> str:
        """Current combined output of the process."""
        ...

    def is_running(self) -> bool:
        ...

    def signal(self, level: SignalLevel) -> None:
        """Ask the process to stop. May raise OSError if it is gone."""
        ...

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for exit; return True if the process has exited."""
        ...

    def kill(self) -> None:
        ...

    @property
    def return_code(self) -> int | None:
        ...

    def drain(self, timeout: float) -> None:
        """Wait until all output written before exit is in the buffer."""
        ...

    def close(self) -> None:
        """Release pipes and helper threads."""
        ...


class SubprocessHandle:
    """ProcessHandle backed by ``subprocess.Popen``."""

    def __init__(self, proc: subprocess.Popen, buffer: OutputBuffer) -> None:
        self._proc = proc
        self._buffer = buffer
        self.pid: int | None = proc.pid
        self._pump = threading.Thread(
            target=self._pump_output,
            name=f"client-output-{proc.pid}",
            daemon=True,
        )
        self._pump.start()

    @classmethod
    def start(cls, argv: List[str], *, env: dict[str, str] | None = None) -> "SubprocessHandle":
        """Spawn ``argv`` with stdout and stderr captured into one buffer.

        Raises OSError when the binary cannot be started.
        """
        kwargs: dict = {}
        if _IS_WINDOWS:
            # Needed so CTRL_BREAK_EVENT reaches only the client.
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP

        proc = subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            env=env,
            **kwargs,
        )
        return cls(proc, OutputBuffer())

    def _pump_output(self) -> None:
        stream = self._proc.stdout
        if stream is None:
            return
        try:
            while True:
                chunk = stream.read1(_READ_CHUNK)
                if not chunk:
                    break
                self._buffer.append(chunk)
        except (OSError, ValueError) as exc:
            # The pipe was closed underneath us during close().
            logger.debug("Output pump for pid %s stopped: %s", self.pid, exc)

    def snapshot(self) -> str:
        return self._buffer.snapshot()

    def is_running(self) -> bool:
        return self._proc.poll() is None

    def signal(self, level: SignalLevel) -> None:
        if _IS_WINDOWS:
            if level is SignalLevel.INTERRUPT:
                self._proc.send_signal(signal.CTRL_BREAK_EVENT)
            else:
                self._proc.terminate()
            return

        if level is SignalLevel.INTERRUPT:
            self._proc.send_signal(signal.SIGINT)
        else:
            self._proc.send_signal(signal.SIGTERM)

    def wait(self, timeout: float | None = None) -> bool:
        try:
            self._proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return False
        return True

    def kill(self) -> None:
        self._proc.kill()

    @property
    def return_code(self) -> int | None:
        return self._proc.poll()

    def drain(self, timeout: float) -> None:
        """Wait for the output pump to reach end-of-stream."""
        self._pump.join(timeout)

    def close(self) -> None:
        self.drain(1.0)
        stream = self._proc.stdout
        if stream is None:
            return
        if self._pump.is_alive():
            # A leftover child still holds the write end. Closing the
            # buffered reader would block on the pump's read lock, so the
            # raw pipe is released instead.
            logger.debug("Output of pid %s still open after exit; closing pipe", self.pid)
            stream.raw.close()
            return
        stream.close()
