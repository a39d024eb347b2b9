"""Tests for the output buffer and subprocess handle."""

from __future__ import annotations

import os
import signal
import sys
import threading
import time

import pytest

from vpnprobe.services.probe.process import OutputBuffer, SubprocessHandle


def test_snapshot_of_empty_buffer_is_empty() -> None:
    assert OutputBuffer().snapshot() == ""


def test_snapshot_replaces_undecodable_bytes() -> None:
    buffer = OutputBuffer()
    buffer.append(b"ok \xff line\n")

    assert buffer.snapshot() == "ok � line\n"


def test_concurrent_appends_are_not_lost() -> None:
    buffer = OutputBuffer()
    line = b"Thu Oct 19 12:00:00 2026 TLS: Initial packet\n"

    def writer() -> None:
        for _ in range(500):
            buffer.append(line)

    threads = [threading.Thread(target=writer) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    snapshot = buffer.snapshot()
    assert len(buffer) == 4 * 500 * len(line)
    assert snapshot.count("TLS: Initial packet") == 2000


def test_handle_merges_stdout_and_stderr() -> None:
    handle = SubprocessHandle.start(
        [
            sys.executable,
            "-c",
            "import sys\n"
            "print('to stdout', flush=True)\n"
            "print('to stderr', file=sys.stderr, flush=True)\n",
        ]
    )
    try:
        assert handle.wait(10) is True
        handle.drain(5)
        output = handle.snapshot()
    finally:
        handle.close()

    assert "to stdout" in output
    assert "to stderr" in output
    assert handle.return_code == 0
    assert handle.is_running() is False


@pytest.mark.skipif(os.name == "nt", reason="uses SIGKILL")
def test_close_releases_pipe_held_by_leftover_child() -> None:
    handle = SubprocessHandle.start(
        [
            sys.executable,
            "-c",
            "import subprocess, sys\n"
            "child = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)'])\n"
            "print(child.pid, flush=True)\n",
        ]
    )
    assert handle.wait(10) is True
    deadline = time.monotonic() + 5
    while not handle.snapshot().strip() and time.monotonic() < deadline:
        time.sleep(0.05)
    leftover_pid = int(handle.snapshot().split()[0])
    try:
        started = time.monotonic()
        handle.close()

        assert time.monotonic() - started < 3
        assert handle._proc.stdout.raw.closed is True
    finally:
        os.kill(leftover_pid, signal.SIGKILL)


def test_wait_times_out_for_running_process() -> None:
    handle = SubprocessHandle.start([sys.executable, "-c", "import time; time.sleep(30)"])
    try:
        assert handle.wait(0.1) is False
        assert handle.is_running() is True
    finally:
        handle.kill()
        handle.wait(5)
        handle.close()
