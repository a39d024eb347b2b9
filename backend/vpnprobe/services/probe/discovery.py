# backend/vpnprobe/services/probe/discovery.py
from __future__ import annotations

"""
Profile discovery.

Every ``*.ovpn`` file directly inside the configured directory is one
endpoint. The endpoint name is the file name without its extension.
Paths are computed with pathlib, so this works the same on Windows (local
dev) and inside Linux containers.
"""

from pathlib import Path
from typing import List

from vpnprobe.models import EndpointConfig

PROFILE_SUFFIX = ".ovpn"


def discover_configs(config_dir: str | Path) -> List[EndpointConfig]:
    """
    Return the endpoint configs found in ``config_dir``, sorted by file name.

    Raises:
        FileNotFoundError: if the directory does not exist.
        NotADirectoryError: if the path is not a directory.
    """
    directory = Path(config_dir).expanduser()
    if not directory.exists():
        raise FileNotFoundError(f"Config directory '{directory}' does not exist.")
    if not directory.is_dir():
        raise NotADirectoryError(f"Config path '{directory}' is not a directory.")

    configs: List[EndpointConfig] = []
    for path in sorted(directory.glob(f"*{PROFILE_SUFFIX}")):
        if not path.is_file():
            continue
        configs.append(
            EndpointConfig(
                name=path.stem,
                path=str(path),
                filename=path.name,
            )
        )
    return configs
