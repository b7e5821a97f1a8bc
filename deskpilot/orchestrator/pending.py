"""
Pending-action state machine - confirm-before-execute for sensitive tools.

Phases are derived from the session's pending action:
- no pending action -> IDLE
- pending with a missing field -> AWAITING_CLARIFICATION
- otherwise -> AWAITING_CONFIRMATION
"""

import logging
import re
from enum import Enum
from typing import Optional

from .state import PendingAction

logger = logging.getLogger(__name__)


class PendingPhase(str, Enum):
    IDLE = "idle"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    AWAITING_CLARIFICATION = "awaiting_clarification"


class PendingDecision(str, Enum):
    EXECUTE = "execute"
    CANCEL = "cancel"
    FILL = "fill"
    FALL_THROUGH = "fall_through"


CONFIRM_WORDS = (
    "yes", "yeah", "yep", "yup", "sure", "ok", "okay",
    "do it", "send it", "confirm", "go ahead", "please", "y",
)
CANCEL_WORDS = (
    "no", "nope", "cancel", "stop", "don't", "nevermind", "never mind", "abort", "n",
)


def _grammar(words) -> "re.Pattern":
    alternatives = "|".join(re.escape(w) for w in words)
    return re.compile(rf"^(?:{alternatives})\.?!?$", re.IGNORECASE)


_CONFIRM_RE = _grammar(CONFIRM_WORDS)
_CANCEL_RE = _grammar(CANCEL_WORDS)


def is_confirmation(message: str) -> bool:
    return bool(_CONFIRM_RE.match((message or "").strip()))


def is_cancellation(message: str) -> bool:
    return bool(_CANCEL_RE.match((message or "").strip()))


def phase_of(pending: Optional[PendingAction]) -> PendingPhase:
    if pending is None:
        return PendingPhase.IDLE
    if pending.missing_field:
        return PendingPhase.AWAITING_CLARIFICATION
    return PendingPhase.AWAITING_CONFIRMATION


def resolve_reply(pending: Optional[PendingAction], message: str) -> PendingDecision:
    """Decide what a user reply means for the outstanding pending action.

    Cancellation wins in any phase. While awaiting clarification, any
    other non-empty reply fills the missing field. While awaiting
    confirmation, anything outside both grammars discards the pending
    action and is handled as a fresh command.
    """
    phase = phase_of(pending)
    if phase == PendingPhase.IDLE:
        return PendingDecision.FALL_THROUGH

    if is_cancellation(message):
        return PendingDecision.CANCEL

    if phase == PendingPhase.AWAITING_CLARIFICATION:
        if (message or "").strip():
            return PendingDecision.FILL
        return PendingDecision.FALL_THROUGH

    if is_confirmation(message):
        return PendingDecision.EXECUTE

    logger.debug(f"Reply does not answer pending {pending.tool}, treating as a new command")
    return PendingDecision.FALL_THROUGH
