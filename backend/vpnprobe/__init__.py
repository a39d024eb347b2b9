# backend/vpnprobe/__init__.py
from __future__ import annotations

"""
Marks `vpnprobe` as a package.

Configuration lives in vpnprobe/config, value types in vpnprobe/models,
services in vpnprobe/services.
"""
