"""
Shared constants for DeskPilot.

Centralizes limits that are needed by the orchestrator, the triggers
package and the HTTP surface to avoid circular imports and duplication.
"""

from typing import FrozenSet, Tuple

# ── Session history ──
# Stored history is capped; the prompt only carries the most recent slice.
HISTORY_LIMIT = 50
PROMPT_HISTORY_LIMIT = 40

# ── Rate limiting (fixed window, per session) ──
DEFAULT_RATE_LIMIT = 60
DEFAULT_RATE_WINDOW_SECONDS = 60

# ── Execution agent ──
BRIDGE_TIMEOUT_SECONDS = 30
BRIDGE_TIMEOUT_ERROR = "Timeout"
BRIDGE_UNREACHABLE_ERROR = "Bridge unreachable"

# ── Scheduling ──
FALLBACK_DELAY_SECONDS = 60
SCHEDULE_ONE_TIME = "one-time"
SCHEDULE_RECURRING = "recurring"
SCHEDULE_TYPES: Tuple[str, ...] = (SCHEDULE_ONE_TIME, SCHEDULE_RECURRING)

# ── Tools handled by the orchestrator itself ──
# send_imessage is reached only through the contact lookup flow.
TOOL_SEND_MESSAGE = "send_imessage"
TOOL_SEARCH_CONTACTS = "search_contacts"
DEFAULT_SENSITIVE_TOOLS: FrozenSet[str] = frozenset({TOOL_SEND_MESSAGE})
HIDDEN_TOOLS: FrozenSet[str] = frozenset({TOOL_SEND_MESSAGE})

DEFAULT_SESSION_ID = "default"
DEFAULT_AGENT_NAME = "SYSTEM"
