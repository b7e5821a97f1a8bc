"""
DeskPilot Orchestrator - per-session chat, confirmation and scheduling
"""

from .models import ActionOutcome, ChatTurn, OrchestratorConfig, ScheduledReport
from .orchestrator import SessionOrchestrator
from .pending import PendingDecision, PendingPhase, phase_of, resolve_reply
from .pool import FileSessionBackend, MemorySessionBackend, SessionBackend, SessionPool
from .rate_limit import RateLimitDecision, RateLimiter
from .response_parser import (
    ActionDirective,
    ParsedResponse,
    PreferenceDirective,
    ScheduleDirective,
    parse_response,
)
from .state import Message, PendingAction, ScheduleRecord, SessionState

__all__ = [
    "ActionDirective",
    "ActionOutcome",
    "ChatTurn",
    "FileSessionBackend",
    "MemorySessionBackend",
    "Message",
    "OrchestratorConfig",
    "ParsedResponse",
    "PendingAction",
    "PendingDecision",
    "PendingPhase",
    "PreferenceDirective",
    "RateLimitDecision",
    "RateLimiter",
    "ScheduleDirective",
    "ScheduleRecord",
    "ScheduledReport",
    "SessionBackend",
    "SessionOrchestrator",
    "SessionPool",
    "SessionState",
    "parse_response",
    "phase_of",
    "resolve_reply",
]
