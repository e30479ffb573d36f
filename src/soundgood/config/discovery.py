"""Locate ``soundgood.toml``.

An explicit ``SOUNDGOOD_CONFIG`` path wins; otherwise the nearest
``soundgood.toml`` in the start directory or any of its parents is used,
the way git finds ``.git/``. ``--config`` bypasses discovery entirely
(see ``SoundgoodSettings.from_cli``).
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "soundgood.toml"
CONFIG_ENV_VAR = "SOUNDGOOD_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file for *start* (default: the working directory).

    A ``SOUNDGOOD_CONFIG`` pointing at a missing file yields None rather
    than falling back to discovery.
    """
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        path = Path(explicit).expanduser()
        return path if path.is_file() else None

    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
