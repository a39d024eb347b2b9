# backend/vpnprobe/models/__init__.py
from __future__ import annotations

"""
Core value types for the VPN probe.

It is used by:
- the probe services (discovery, runner, cycle) for passing configs and results
- the reporters, which only ever see AttemptOutcome lists

Models:
- EndpointConfig: one discovered OpenVPN profile
- AttemptResult: raw result of a single connection attempt
- AttemptOutcome: classified, report-ready result for one endpoint

There is no persistence layer; every value lives for one check cycle.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class EndpointConfig:
    """An OpenVPN profile found on disk."""

    name: str
    path: str
    filename: str = ""


@dataclass
class AttemptResult:
    """Result of a single client invocation."""

    success: bool
    output: str
    error: str | None = None
    failure_reason: str | None = None
    return_code: int | None = None
    command: list[str] | None = None
    timeout_seconds: float | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    duration_seconds: float | None = None


@dataclass(frozen=True)
class AttemptOutcome:
    """Classified result for one endpoint in a cycle."""

    config: EndpointConfig
    success: bool
    raw_output: str = ""
    error_category: str = ""
    relevant_excerpt: str = ""
