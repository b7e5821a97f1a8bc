"""
Real-time fan-out - pushes server events to every live listener of a session.

A listener is any coroutine function taking the event's wire dict
(the WebSocket route registers ``websocket.send_json``). A listener
whose send fails is dropped; the others still receive the event.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List

from .models import RealtimeEvent

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], Awaitable[None]]


class FanOutHub:
    """
    Per-session listener registry.

    Example usage:
        hub = FanOutHub()
        hub.register("default", websocket.send_json)
        await hub.send("default", notification_event("Hi", "there"))
        hub.unregister("default", websocket.send_json)
    """

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}

    def register(self, session_id: str, listener: Listener) -> None:
        self._listeners.setdefault(session_id, []).append(listener)
        logger.debug(f"Listener registered for session {session_id} ({self.count(session_id)} live)")

    def unregister(self, session_id: str, listener: Listener) -> bool:
        listeners = self._listeners.get(session_id)
        if not listeners:
            return False
        try:
            listeners.remove(listener)
        except ValueError:
            return False
        if not listeners:
            del self._listeners[session_id]
        return True

    def count(self, session_id: str) -> int:
        return len(self._listeners.get(session_id, ()))

    async def send(self, session_id: str, event: RealtimeEvent) -> int:
        """Deliver one event to every listener of a session.

        Returns the number of listeners that received it.
        """
        listeners = list(self._listeners.get(session_id, ()))
        if not listeners:
            return 0

        message = event.to_dict()
        results = await asyncio.gather(
            *(listener(message) for listener in listeners),
            return_exceptions=True,
        )

        delivered = 0
        for listener, result in zip(listeners, results):
            if isinstance(result, Exception):
                logger.warning(f"Dropping listener for session {session_id}: {result}")
                self.unregister(session_id, listener)
            else:
                delivered += 1
        return delivered

    async def broadcast(self, event: RealtimeEvent) -> int:
        """Deliver one event to every listener of every session."""
        total = 0
        for session_id in list(self._listeners):
            total += await self.send(session_id, event)
        return total

    def clear(self) -> None:
        self._listeners.clear()
