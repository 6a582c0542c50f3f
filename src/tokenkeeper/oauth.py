"""Tracking of interactive (redirect based) sign-in flows.

An :class:`InflightOAuthTracker` is marked busy while a browser sign-in is
in progress.  Its :meth:`~InflightOAuthTracker.wait` method is meant to be
handed to :meth:`TokenOrchestrator.set_wait_for_inflight_oauth` so token
reads observe the outcome of that sign-in instead of racing it.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from loguru import logger


class InflightOAuthTracker:
    """Counts running interactive sign-ins and lets callers wait them out."""

    def __init__(self) -> None:
        self._active = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def in_flight(self) -> bool:
        return self._active > 0

    def start(self) -> None:
        """Mark the beginning of an interactive sign-in."""
        self._active += 1
        self._idle.clear()
        logger.debug(f"Interactive sign-in started ({self._active} in flight)")

    def finish(self) -> None:
        """Mark the end of an interactive sign-in, successful or not."""
        if self._active == 0:
            logger.warning("InflightOAuthTracker.finish() called with nothing in flight")
            return
        self._active -= 1
        if self._active == 0:
            self._idle.set()
        logger.debug(f"Interactive sign-in finished ({self._active} in flight)")

    async def wait(self) -> None:
        """Suspend until no interactive sign-in is running."""
        await self._idle.wait()

    @asynccontextmanager
    async def track(self) -> AsyncIterator[None]:
        """Context manager wrapping :meth:`start` and :meth:`finish`."""
        self.start()
        try:
            yield
        finally:
            self.finish()
