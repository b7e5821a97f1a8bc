"""Real-time fan-out of server events to live listeners."""

from .hub import FanOutHub, Listener
from .models import EventType, RealtimeEvent, notification_event, ping_event

__all__ = [
    "EventType",
    "FanOutHub",
    "Listener",
    "RealtimeEvent",
    "notification_event",
    "ping_event",
]
