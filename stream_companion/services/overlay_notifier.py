"""Push channel from the service to connected overlay and chat clients."""

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from ..models import Counter, OverlaySettings
from .serialization import counter_to_dict, overlay_settings_to_dict

log = structlog.stdlib.get_logger()


class OverlayNotifier(Protocol):
    async def notify_settings_update(self, user_id: str, settings: OverlaySettings) -> None: ...

    async def notify_counter_update(self, user_id: str, counter: Counter) -> None: ...

    async def notify_custom_alert(self, user_id: str, alert_type: str, payload: dict[str, Any]) -> None: ...


@dataclass(frozen=True)
class OverlayMessage:
    """A single message delivered to a user's overlay clients."""
    method: str
    data: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"method": self.method, "data": self.data}


class BroadcastOverlayNotifier:
    """Fans messages out to every subscriber queue registered for a user.

    Delivery is fire-and-forget: publishing never waits for a consumer, a
    full subscriber queue drops the message, and a user without subscribers
    simply gets nothing. Consumers must tolerate duplicate or reordered
    messages.
    """

    def __init__(self, max_queue_size: int = 100) -> None:
        self._max_queue_size = max_queue_size
        self._subscribers: dict[str, set[asyncio.Queue[OverlayMessage]]] = {}

    def subscribe(self, user_id: str) -> asyncio.Queue[OverlayMessage]:
        """Register a new client for ``user_id`` and return its queue."""
        queue: asyncio.Queue[OverlayMessage] = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers.setdefault(user_id, set()).add(queue)
        log.debug("Overlay client subscribed", user_id=user_id, clients=len(self._subscribers[user_id]))
        return queue

    def unsubscribe(self, user_id: str, queue: asyncio.Queue[OverlayMessage]) -> None:
        queues = self._subscribers.get(user_id)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[user_id]
        log.debug("Overlay client unsubscribed", user_id=user_id)

    def subscriber_count(self, user_id: str) -> int:
        return len(self._subscribers.get(user_id, ()))

    async def notify_settings_update(self, user_id: str, settings: OverlaySettings) -> None:
        self._publish(user_id, OverlayMessage("settingsUpdate", overlay_settings_to_dict(settings)))

    async def notify_counter_update(self, user_id: str, counter: Counter) -> None:
        self._publish(user_id, OverlayMessage("counterUpdate", counter_to_dict(counter)))

    async def notify_custom_alert(self, user_id: str, alert_type: str, payload: dict[str, Any]) -> None:
        self._publish(user_id, OverlayMessage(alert_type, payload))

    def _publish(self, user_id: str, message: OverlayMessage) -> None:
        queues = self._subscribers.get(user_id)
        if not queues:
            log.debug("No overlay clients connected", user_id=user_id, method=message.method)
            return

        for queue in list(queues):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                log.warning("Overlay client queue full, dropping message", user_id=user_id, method=message.method)

        log.info("Overlay notified", user_id=user_id, method=message.method, clients=len(queues))
