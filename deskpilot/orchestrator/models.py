"""
DeskPilot Orchestrator Models - Data structures for orchestration

This module defines:
- OrchestratorConfig: Configuration for the session orchestrator
- ActionOutcome: One executed tool call as reported to the client
- ScheduledReport: A schedule registered during a chat turn
- ChatTurn: The result of one chat message
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

from ..bridge.models import ToolResult
from ..constants import (
    DEFAULT_AGENT_NAME,
    DEFAULT_RATE_LIMIT,
    DEFAULT_RATE_WINDOW_SECONDS,
    DEFAULT_SENSITIVE_TOOLS,
    HIDDEN_TOOLS,
    PROMPT_HISTORY_LIMIT,
)
from .rate_limit import RateLimitDecision

RATE_LIMITED_MESSAGE = "Rate limit exceeded"


@dataclass
class OrchestratorConfig:
    """Configuration for the session orchestrator"""
    agent_name: str = DEFAULT_AGENT_NAME
    sensitive_tools: FrozenSet[str] = DEFAULT_SENSITIVE_TOOLS
    hidden_tools: FrozenSet[str] = HIDDEN_TOOLS
    vision: bool = True
    prompt_history_limit: int = PROMPT_HISTORY_LIMIT
    rate_limit_max_requests: int = DEFAULT_RATE_LIMIT
    rate_limit_window_seconds: float = DEFAULT_RATE_WINDOW_SECONDS


@dataclass
class ActionOutcome:
    tool: str
    args: Dict[str, Any]
    result: str
    success: bool
    image: Optional[Dict[str, Any]] = None

    @classmethod
    def from_result(cls, tool: str, args: Dict[str, Any], result: ToolResult) -> "ActionOutcome":
        return cls(tool=tool, args=args, result=result.text, success=result.success, image=result.image)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "tool": self.tool,
            "args": self.args,
            "result": self.result,
            "success": self.success,
        }
        if self.image:
            d["image"] = self.image
        return d


@dataclass
class ScheduledReport:
    id: str
    when: str
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "when": self.when, "description": self.description}


@dataclass
class ChatTurn:
    """Result of one chat message.

    ``success`` is False only when the completion model could not be
    reached. ``throttled`` carries the rate-limit decision when the
    message was rejected before any processing.
    """
    message: str
    actions: List[ActionOutcome] = field(default_factory=list)
    scheduled: Optional[ScheduledReport] = None
    success: bool = True
    throttled: Optional[RateLimitDecision] = None

    @property
    def action(self) -> Optional[ActionOutcome]:
        return self.actions[0] if self.actions else None

    @classmethod
    def rate_limited(cls, decision: RateLimitDecision) -> "ChatTurn":
        return cls(message=RATE_LIMITED_MESSAGE, success=False, throttled=decision)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"message": self.message}
        if self.actions:
            d["action"] = self.actions[0].to_dict()
            d["actions"] = [a.to_dict() for a in self.actions]
        if self.scheduled:
            d["scheduled"] = self.scheduled.to_dict()
        if self.throttled:
            d["error"] = RATE_LIMITED_MESSAGE
            d["retryAfter"] = self.throttled.retry_after_seconds
        return d
