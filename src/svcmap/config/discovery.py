"""Config file discovery.

``svcmap.toml`` is located the way git finds ``.git/``: the nearest one
in the start directory or any parent wins.  ``SVCMAP_CONFIG`` pins an
explicit file and disables the walk.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "svcmap.toml"
CONFIG_ENV_VAR = "SVCMAP_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the governing ``svcmap.toml`` for *start* (default: cwd), or None."""
    pinned = os.environ.get(CONFIG_ENV_VAR)
    if pinned:
        path = Path(pinned)
        return path if path.is_file() else None

    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
