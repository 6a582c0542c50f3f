"""Token stores: the durable holders of a :class:`TokenSet`.

Every store keeps a single JSON-compatible document::

    {
        "tokens": {...},             # the current TokenSet, replaced wholesale
        "last_auth_user": "alice",
        "devices": {"alice": {...}}  # DeviceMetadata per username
    }

:class:`InMemoryTokenStore` keeps it in memory, :class:`FileTokenStore`
persists it with :func:`atomic_write`.  Any object implementing the
:class:`TokenStore` protocol can be handed to the orchestrator instead.
"""

from __future__ import annotations

import asyncio
import copy
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loguru import logger
from pydantic import ValidationError

from ..models.tokens import DeviceMetadata, TokenSet
from .paths import TOKENS_FILE, atomic_write

# Reported by get_last_auth_user() before anyone has signed in.
DEFAULT_AUTH_USER = "username"


@runtime_checkable
class TokenStore(Protocol):
    async def load_tokens(self) -> TokenSet | None: ...

    async def get_last_auth_user(self) -> str: ...

    async def store_tokens(self, tokens: TokenSet) -> None: ...

    async def clear_tokens(self) -> None: ...

    async def get_device_metadata(self, username: str | None = None) -> DeviceMetadata | None: ...

    async def clear_device_metadata(self, username: str | None = None) -> None: ...


def _devices(document: dict[str, Any]) -> dict[str, Any]:
    """Return the per-user device section, ignoring a malformed one."""
    devices = document.get("devices", {})
    if not isinstance(devices, dict):
        logger.warning("Ignoring malformed device metadata section in token document")
        return {}
    return devices


def _last_auth_user(document: dict[str, Any]) -> str | None:
    username = document.get("last_auth_user")
    return username if isinstance(username, str) else None


class _DocumentTokenStore(ABC):
    """Shared read-modify-write logic over a single token document."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()

    @abstractmethod
    async def _read(self) -> dict[str, Any]: ...

    @abstractmethod
    async def _write(self, document: dict[str, Any]) -> None: ...

    # -- tokens -------------------------------------------------------------

    async def load_tokens(self) -> TokenSet | None:
        document = await self._read()
        raw = document.get("tokens")
        if not raw:
            return None
        if not isinstance(raw, dict):
            logger.warning("Discarding malformed stored tokens: not an object")
            return None
        data = dict(raw)
        username = _last_auth_user(document)
        data["username"] = username
        device = _devices(document).get(username) if username else None
        if device:
            data["device_metadata"] = device
        try:
            return TokenSet.model_validate(data)
        except ValidationError as exc:
            logger.warning(f"Discarding unreadable stored tokens: {exc}")
            return None

    async def get_last_auth_user(self) -> str:
        document = await self._read()
        return _last_auth_user(document) or DEFAULT_AUTH_USER

    async def store_tokens(self, tokens: TokenSet) -> None:
        async with self._lock:
            document = await self._read()
            document["tokens"] = tokens.model_dump(
                mode="json",
                exclude={"username", "device_metadata"},
                exclude_none=True,
            )
            if tokens.username:
                document["last_auth_user"] = tokens.username
            else:
                document.pop("last_auth_user", None)
            if tokens.username and tokens.device_metadata is not None:
                devices = _devices(document)
                document["devices"] = devices
                devices[tokens.username] = tokens.device_metadata.model_dump(mode="json")
            await self._write(document)
        logger.debug("Tokens stored")

    async def clear_tokens(self) -> None:
        async with self._lock:
            document = await self._read()
            document.pop("tokens", None)
            document.pop("last_auth_user", None)
            await self._write(document)
        logger.debug("Tokens cleared")

    # -- device metadata ----------------------------------------------------

    async def get_device_metadata(self, username: str | None = None) -> DeviceMetadata | None:
        document = await self._read()
        username = username or _last_auth_user(document)
        if not username:
            return None
        raw = _devices(document).get(username)
        if not raw:
            return None
        try:
            return DeviceMetadata.model_validate(raw)
        except ValidationError as exc:
            logger.warning(f"Discarding unreadable device metadata for {username}: {exc}")
            return None

    async def clear_device_metadata(self, username: str | None = None) -> None:
        async with self._lock:
            document = await self._read()
            username = username or _last_auth_user(document)
            devices = _devices(document)
            if not username or username not in devices:
                return
            del devices[username]
            await self._write(document)
        logger.debug(f"Device metadata cleared for {username}")


class InMemoryTokenStore(_DocumentTokenStore):
    """Process-local store; contents vanish with the process."""

    def __init__(self) -> None:
        super().__init__()
        self._document: dict[str, Any] = {}

    async def _read(self) -> dict[str, Any]:
        return copy.deepcopy(self._document)

    async def _write(self, document: dict[str, Any]) -> None:
        self._document = copy.deepcopy(document)


class FileTokenStore(_DocumentTokenStore):
    """JSON file store, written atomically.

    Parameters
    ----------
    path:
        Location of the token file. Defaults to :data:`paths.TOKENS_FILE`.

    A missing or corrupt file reads as an empty document.
    """

    def __init__(self, path: Path | None = None) -> None:
        super().__init__()
        self.path = path or TOKENS_FILE

    def _read_file(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            loaded = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning(f"Failed to load tokens from {self.path}: {exc}")
            return {}
        return loaded if isinstance(loaded, dict) else {}

    def _write_file(self, document: dict[str, Any]) -> None:
        atomic_write(self.path, json.dumps(document, indent=2))
        logger.debug(f"Token document saved to {self.path}")

    async def _read(self) -> dict[str, Any]:
        return await asyncio.to_thread(self._read_file)

    async def _write(self, document: dict[str, Any]) -> None:
        await asyncio.to_thread(self._write_file, document)
