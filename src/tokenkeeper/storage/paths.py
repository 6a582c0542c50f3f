"""Cross-platform path management for tokenkeeper.

All persistent file locations are defined here so every module resolves
the same canonical paths.  Directory creation is deferred to helpers rather
than happening at import time, keeping imports side-effect-free.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from platformdirs import user_config_dir

# ---------------------------------------------------------------------------
# Application identifier
# ---------------------------------------------------------------------------

APP_NAME = "tokenkeeper"

# ---------------------------------------------------------------------------
# Base directories
# ---------------------------------------------------------------------------

CONFIG_DIR: Path = Path(user_config_dir(APP_NAME))

# ---------------------------------------------------------------------------
# Standard file locations
# ---------------------------------------------------------------------------

TOKENS_FILE = CONFIG_DIR / "tokens.json"
SETTINGS_FILE = CONFIG_DIR / "settings.json"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def ensure_parents(path: Path) -> Path:
    """Create all parent directories for *path* if they do not exist.

    Returns *path* unchanged so the call can be used inline.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass
    return path


def atomic_write(path: Path, data: Union[str, bytes]) -> None:
    """Write *data* to *path* atomically (write-to-tmp then replace).

    Bytes are decoded as UTF-8.  The temporary file is removed if the
    replace step fails, and the error is re-raised.
    """
    tmp = path.with_suffix(path.suffix + ".tmp")
    ensure_parents(tmp)

    text = data.decode() if isinstance(data, bytes) else data
    with tmp.open("w", encoding="utf-8") as fh:
        fh.write(text)

    try:
        os.replace(tmp, path)
    except OSError:
        try:
            if tmp.exists():
                tmp.unlink()
        except OSError:
            pass
        raise
