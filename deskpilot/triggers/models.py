"""Scheduler data models — trigger specs, payloads and persisted triggers."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional, Union

from ..constants import SCHEDULE_ONE_TIME, SCHEDULE_RECURRING
from .when import When


# ---------------------------------------------------------------------------
# Trigger specs (discriminated union via "kind")
# ---------------------------------------------------------------------------

@dataclass
class AtSpec:
    """One-shot trigger at a specific instant."""
    kind: Literal["at"] = "at"
    at: str = ""  # ISO 8601 datetime string

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "at": self.at}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AtSpec":
        return cls(at=d.get("at", ""))


@dataclass
class CronSpec:
    """Recurring trigger driven by a 5-field cron expression."""
    kind: Literal["cron"] = "cron"
    expr: str = ""
    tz: Optional[str] = None  # IANA timezone; None means the host's local time

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"kind": self.kind, "expr": self.expr}
        if self.tz:
            d["tz"] = self.tz
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CronSpec":
        return cls(expr=d.get("expr", ""), tz=d.get("tz"))


TriggerSpec = Union[AtSpec, CronSpec]


def spec_from_dict(d: Dict[str, Any]) -> TriggerSpec:
    """Deserialize a trigger spec by its 'kind' discriminator."""
    kind = d.get("kind", "")
    if kind == "at":
        return AtSpec.from_dict(d)
    if kind == "cron":
        return CronSpec.from_dict(d)
    raise ValueError(f"Unknown trigger kind: {kind!r}")


def spec_from_when(when: When, tz: Optional[str] = None) -> TriggerSpec:
    """Build a spec from a parsed temporal expression."""
    if isinstance(when, datetime):
        return AtSpec(at=when.astimezone(timezone.utc).isoformat())
    return CronSpec(expr=when, tz=tz)


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------

@dataclass
class TriggerPayload:
    """What to run when the trigger fires."""
    tool: str
    args: Dict[str, Any] = field(default_factory=dict)
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"tool": self.tool, "args": self.args, "description": self.description}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TriggerPayload":
        return cls(
            tool=d.get("tool", ""),
            args=d.get("args") or {},
            description=d.get("description", ""),
        )


# ---------------------------------------------------------------------------
# Trigger
# ---------------------------------------------------------------------------

@dataclass
class ScheduledTrigger:
    """A durable trigger owned by the scheduler."""
    session_id: str
    spec: TriggerSpec
    payload: TriggerPayload
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    created_at_ms: int = field(default_factory=lambda: int(time.time() * 1000))
    next_run_at_ms: Optional[int] = None
    last_run_at_ms: Optional[int] = None
    running_at_ms: Optional[int] = None
    run_count: int = 0

    @property
    def schedule_type(self) -> str:
        return SCHEDULE_RECURRING if isinstance(self.spec, CronSpec) else SCHEDULE_ONE_TIME

    @property
    def is_one_time(self) -> bool:
        return isinstance(self.spec, AtSpec)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sessionId": self.session_id,
            "spec": self.spec.to_dict(),
            "payload": self.payload.to_dict(),
            "createdAtMs": self.created_at_ms,
            "nextRunAtMs": self.next_run_at_ms,
            "lastRunAtMs": self.last_run_at_ms,
            "runCount": self.run_count,
            "type": self.schedule_type,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ScheduledTrigger":
        return cls(
            id=d["id"],
            session_id=d.get("sessionId", d.get("session_id", "")),
            spec=spec_from_dict(d.get("spec") or {}),
            payload=TriggerPayload.from_dict(d.get("payload") or {}),
            created_at_ms=d.get("createdAtMs", d.get("created_at_ms", 0)),
            next_run_at_ms=d.get("nextRunAtMs", d.get("next_run_at_ms")),
            last_run_at_ms=d.get("lastRunAtMs", d.get("last_run_at_ms")),
            run_count=d.get("runCount", d.get("run_count", 0)),
        )
