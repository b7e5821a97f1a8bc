"""
DeskPilot Streaming Models - events pushed over the real-time channel

Every event goes over the wire as ``{type, payload, timestamp}`` with
``timestamp`` in milliseconds since the epoch.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class EventType(str, Enum):
    """Types of events a listener can receive"""
    NOTIFICATION = "notification"
    SCHEDULED_RESULT = "scheduled_result"
    BRIDGE_STATUS = "bridge_status"
    CHAT = "chat"
    PING = "ping"


@dataclass
class RealtimeEvent:
    type: EventType
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization"""
        return {
            "type": self.type.value,
            "payload": self.payload,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RealtimeEvent":
        return cls(
            type=EventType(data["type"]),
            payload=data.get("payload") or {},
            timestamp=data.get("timestamp", int(time.time() * 1000)),
        )


def notification_event(title: str, message: str) -> RealtimeEvent:
    return RealtimeEvent(EventType.NOTIFICATION, {"title": title, "message": message})


def ping_event() -> RealtimeEvent:
    return RealtimeEvent(EventType.PING, {"pong": True})
