# backend/vpnprobe/config/__init__.py
from __future__ import annotations

"""
Shortcut imports for configuration.
"""

from .settings import Settings, get_settings, parse_duration  # noqa: F401
