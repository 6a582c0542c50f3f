"""User-editable settings persisted next to the token file.

``AppSettings`` reads ``settings.json`` on every call so edits made by other
processes are picked up; unknown keys fall back to :data:`DEFAULTS`.
"""

from __future__ import annotations

import json
from typing import Any

from loguru import logger
from pydantic import ValidationError

from ..models.config import AuthConfig
from .paths import SETTINGS_FILE, atomic_write

DEFAULTS: dict[str, Any] = {
    "debug": False,
    "log_level": "INFO",
    "refresh_timeout": 30.0,
    "single_flight_refresh": False,
    "auth": None,
}


class AppSettings:
    """Thin JSON-backed settings accessor."""

    @staticmethod
    def load() -> dict[str, Any]:
        """Return the merged settings dict (defaults overlaid with the file)."""
        settings = dict(DEFAULTS)
        if not SETTINGS_FILE.exists():
            return settings
        try:
            loaded = json.loads(SETTINGS_FILE.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning(f"Ignoring unreadable settings file {SETTINGS_FILE}: {exc}")
            return settings
        if isinstance(loaded, dict):
            settings.update(loaded)
        return settings

    @staticmethod
    def get(key: str, default: Any = None) -> Any:
        settings = AppSettings.load()
        if key in settings:
            return settings[key]
        return default

    @staticmethod
    def set(key: str, value: Any) -> None:
        settings = AppSettings.load()
        settings[key] = value
        atomic_write(SETTINGS_FILE, json.dumps(settings, indent=2))


def load_auth_config() -> AuthConfig | None:
    """Build an :class:`AuthConfig` from the ``auth`` settings section.

    Returns ``None`` when the section is missing or malformed; an absent
    configuration simply means token management is off.
    """
    raw = AppSettings.get("auth")
    if not raw:
        return None
    try:
        return AuthConfig.model_validate(raw)
    except ValidationError as exc:
        logger.warning(f"Ignoring invalid auth settings: {exc}")
        return None
