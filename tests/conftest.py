"""Shared fixtures: throw-away fake OpenVPN clients."""

from __future__ import annotations

import sys
import textwrap
from pathlib import Path
from typing import Callable, List

import pytest

from vpnprobe.models import EndpointConfig
from vpnprobe.services.probe.process import SubprocessHandle
from vpnprobe.services.probe.shutdown import ShutdownSequencer

_PRELUDE = """
import signal
import sys
import time


def _stop(signum, frame):
    print("SIGTERM[soft,exit-with-notify] received, process exiting", flush=True)
    sys.exit(0)


signal.signal(signal.SIGINT, _stop)
signal.signal(signal.SIGTERM, _stop)


def say(line):
    print(line, flush=True)

"""


class RecordingSequencer(ShutdownSequencer):
    """ShutdownSequencer that remembers every stop() it performed."""

    def __init__(self, grace_window: float = 2.0) -> None:
        super().__init__(grace_window)
        self.steps: list = []

    def stop(self, handle, grace_window=None):
        step = super().stop(handle, grace_window)
        self.steps.append(step)
        return step


class FakeClient:
    """Spawns a Python script in place of the real client binary."""

    def __init__(self, script: Path) -> None:
        self.script = script
        self.argv: List[str] | None = None
        self.handles: List[SubprocessHandle] = []

    def spawn(self, argv: List[str]) -> SubprocessHandle:
        self.argv = list(argv)
        handle = SubprocessHandle.start([sys.executable, str(self.script), *argv[1:]])
        self.handles.append(handle)
        return handle


@pytest.fixture
def fake_client(tmp_path: Path) -> Callable[[str], FakeClient]:
    def _make(body: str) -> FakeClient:
        script = tmp_path / "fake_openvpn.py"
        script.write_text(_PRELUDE + textwrap.dedent(body), encoding="utf-8")
        return FakeClient(script)

    return _make


@pytest.fixture
def sequencer() -> RecordingSequencer:
    return RecordingSequencer(grace_window=2.0)


@pytest.fixture
def endpoint(tmp_path: Path) -> EndpointConfig:
    profile = tmp_path / "frankfurt-01.ovpn"
    profile.write_text("client\nremote vpn.example.net 1194\n", encoding="utf-8")
    return EndpointConfig(name="frankfurt-01", path=str(profile), filename=profile.name)
