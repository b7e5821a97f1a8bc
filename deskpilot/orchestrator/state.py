"""
Session state - the single durable blob owned by one session actor.

Every mutation goes through a method on SessionState so the invariants
(history cap, one pending action, registry/trigger correspondence) are
enforced in one place.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..constants import HISTORY_LIMIT, SCHEDULE_ONE_TIME

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Message:
    role: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Message":
        return cls(role=d.get("role", ROLE_USER), content=str(d.get("content", "")))


@dataclass
class PendingAction:
    """A sensitive tool call waiting for the user's yes/no.

    ``missing_field`` names an argument still to be supplied by the user
    (for example the body of a text message) before confirmation.
    """
    tool: str
    args: Dict[str, Any] = field(default_factory=dict)
    context: str = ""
    original_request: str = ""
    missing_field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "tool": self.tool,
            "args": self.args,
            "context": self.context,
            "originalRequest": self.original_request,
        }
        if self.missing_field:
            d["missingField"] = self.missing_field
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PendingAction":
        return cls(
            tool=d.get("tool", ""),
            args=dict(d.get("args") or {}),
            context=d.get("context", ""),
            original_request=d.get("originalRequest", d.get("original_request", "")),
            missing_field=d.get("missingField", d.get("missing_field")),
        )


@dataclass
class RateLimitState:
    count: int = 0
    reset_at: int = 0  # ms since epoch

    def to_dict(self) -> Dict[str, int]:
        return {"count": self.count, "resetAt": self.reset_at}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RateLimitState":
        return cls(count=d.get("count", 0), reset_at=d.get("resetAt", d.get("reset_at", 0)))


@dataclass(frozen=True)
class ScheduleRecord:
    """The orchestrator's index entry for one scheduler trigger (same id)."""
    id: str
    when: str
    tool: str
    args: Dict[str, Any]
    description: str
    created_at: int
    type: str

    @property
    def is_one_time(self) -> bool:
        return self.type == SCHEDULE_ONE_TIME

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "when": self.when,
            "tool": self.tool,
            "args": self.args,
            "description": self.description,
            "createdAt": self.created_at,
            "type": self.type,
        }

    def to_listing(self) -> Dict[str, Any]:
        """Shape used by ``GET /schedules``."""
        return {
            "id": self.id,
            "time": self.when,
            "payload": {"tool": self.tool, "args": self.args, "description": self.description},
            "type": self.type,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ScheduleRecord":
        return cls(
            id=d["id"],
            when=d.get("when", ""),
            tool=d.get("tool", ""),
            args=dict(d.get("args") or {}),
            description=d.get("description", ""),
            created_at=d.get("createdAt", d.get("created_at", 0)),
            type=d.get("type", SCHEDULE_ONE_TIME),
        )


@dataclass
class SessionState:
    history: List[Message] = field(default_factory=list)
    preferences: Dict[str, str] = field(default_factory=dict)
    pending_action: Optional[PendingAction] = None
    rate_limit: Optional[RateLimitState] = None
    schedule_registry: List[ScheduleRecord] = field(default_factory=list)
    last_active: int = field(default_factory=_now_ms)

    # -- history ---------------------------------------------------------

    def append_entry(self, role: str, content: str) -> None:
        self.history.append(Message(role=role, content=content))
        if len(self.history) > HISTORY_LIMIT:
            del self.history[: len(self.history) - HISTORY_LIMIT]
        self.touch()

    def append_exchange(self, user_text: str, assistant_text: str) -> None:
        self.append_entry(ROLE_USER, user_text)
        self.append_entry(ROLE_ASSISTANT, assistant_text)

    def recent_history(self, limit: int) -> List[Message]:
        return self.history[-limit:] if limit > 0 else []

    def clear_history(self) -> None:
        self.history = []
        self.touch()

    # -- preferences -------------------------------------------------------

    def set_preference(self, key: str, value: str) -> None:
        self.preferences[key] = value
        self.touch()

    # -- pending action ----------------------------------------------------

    def set_pending(self, pending: PendingAction) -> Optional[PendingAction]:
        """Install a pending action; returns the one it replaced, if any."""
        replaced = self.pending_action
        self.pending_action = pending
        self.touch()
        return replaced

    def clear_pending(self) -> Optional[PendingAction]:
        pending = self.pending_action
        self.pending_action = None
        self.touch()
        return pending

    def fill_pending(self, value: str) -> PendingAction:
        """Supply the missing argument of the pending action."""
        pending = self.pending_action
        if pending is None or not pending.missing_field:
            raise ValueError("No pending action is awaiting clarification")
        pending.args = {**pending.args, pending.missing_field: value}
        pending.missing_field = None
        self.touch()
        return pending

    # -- schedules ---------------------------------------------------------

    def add_schedule(self, record: ScheduleRecord) -> None:
        self.schedule_registry.append(record)
        self.touch()

    def get_schedule(self, schedule_id: str) -> Optional[ScheduleRecord]:
        for record in self.schedule_registry:
            if record.id == schedule_id:
                return record
        return None

    def remove_schedule(self, schedule_id: str) -> Optional[ScheduleRecord]:
        record = self.get_schedule(schedule_id)
        if record is not None:
            self.schedule_registry = [r for r in self.schedule_registry if r.id != schedule_id]
            self.touch()
        return record

    # -- lifecycle ---------------------------------------------------------

    def reset(self) -> List[ScheduleRecord]:
        """Clear history, pending action and schedules; keep preferences.

        Returns the removed schedule records so their triggers can be cancelled.
        """
        removed = list(self.schedule_registry)
        self.history = []
        self.pending_action = None
        self.schedule_registry = []
        self.touch()
        return removed

    def touch(self) -> None:
        self.last_active = _now_ms()

    # -- serialization -----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "history": [m.to_dict() for m in self.history],
            "preferences": dict(self.preferences),
            "pendingAction": self.pending_action.to_dict() if self.pending_action else None,
            "rateLimit": self.rate_limit.to_dict() if self.rate_limit else None,
            "scheduleRegistry": [r.to_dict() for r in self.schedule_registry],
            "lastActive": self.last_active,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SessionState":
        pending = d.get("pendingAction", d.get("pending_action"))
        rate_limit = d.get("rateLimit", d.get("rate_limit"))
        return cls(
            history=[Message.from_dict(m) for m in d.get("history") or []][-HISTORY_LIMIT:],
            preferences={str(k): str(v) for k, v in (d.get("preferences") or {}).items()},
            pending_action=PendingAction.from_dict(pending) if pending else None,
            rate_limit=RateLimitState.from_dict(rate_limit) if rate_limit else None,
            schedule_registry=[
                ScheduleRecord.from_dict(r)
                for r in d.get("scheduleRegistry", d.get("schedule_registry")) or []
            ],
            last_active=d.get("lastActive", d.get("last_active", _now_ms())),
        )

    def summary(self) -> Dict[str, Any]:
        """Shape used by ``GET /state``."""
        return {
            "historyLength": len(self.history),
            "preferences": dict(self.preferences),
            "pendingAction": self.pending_action.to_dict() if self.pending_action else None,
            "lastActive": self.last_active,
        }
