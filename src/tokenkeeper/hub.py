"""In-process publish/subscribe used to announce token lifecycle events.

The orchestrator only depends on the :class:`EventNotifier` protocol; a
:class:`Hub` is the default implementation and is injected per orchestrator
rather than shared process-wide.

Example::

    hub = Hub()
    unsubscribe = hub.listen(AUTH_CHANNEL, lambda capsule: print(capsule.payload.event))
    hub.publish(AUTH_CHANNEL, TOKEN_REFRESH)
    unsubscribe()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

from loguru import logger

AUTH_CHANNEL = "auth"
AUTH_SOURCE = "Auth"

TOKEN_REFRESH = "tokenRefresh"
TOKEN_REFRESH_FAILURE = "tokenRefresh_failure"


@dataclass(frozen=True)
class HubPayload:
    event: str
    data: Any = None


@dataclass(frozen=True)
class HubCapsule:
    """What a listener receives for each published event."""

    channel: str
    payload: HubPayload
    source: str


HubCallback = Callable[[HubCapsule], None]


@runtime_checkable
class EventNotifier(Protocol):
    """Anything the orchestrator can publish lifecycle events to."""

    def publish(
        self,
        channel: str,
        event: str,
        data: Any = None,
        source: str = AUTH_SOURCE,
    ) -> None: ...


class Hub:
    """Synchronous, best-effort event bus keyed by channel name.

    Listener exceptions are logged and never reach the publisher.
    """

    def __init__(self, name: str = "tokenkeeper") -> None:
        self.name = name
        self._listeners: dict[str, list[HubCallback]] = {}

    def listen(self, channel: str, callback: HubCallback) -> Callable[[], None]:
        """Register *callback* on *channel* and return an unsubscribe function."""
        self._listeners.setdefault(channel, []).append(callback)

        def _unsubscribe() -> None:
            self.remove(channel, callback)

        return _unsubscribe

    def remove(self, channel: str, callback: HubCallback) -> None:
        listeners = self._listeners.get(channel)
        if not listeners:
            return
        try:
            listeners.remove(callback)
        except ValueError:
            return
        if not listeners:
            del self._listeners[channel]

    def publish(
        self,
        channel: str,
        event: str,
        data: Any = None,
        source: str = AUTH_SOURCE,
    ) -> None:
        capsule = HubCapsule(channel=channel, payload=HubPayload(event, data), source=source)
        # Copy so listeners may unsubscribe while being notified.
        for callback in list(self._listeners.get(channel, ())):
            try:
                callback(capsule)
            except Exception as exc:
                logger.warning(f"Hub '{self.name}' listener failed on {channel}/{event}: {exc}")

    def listener_count(self, channel: str) -> int:
        return len(self._listeners.get(channel, ()))
