"""Fixed-window request throttling per session."""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict

from ..constants import DEFAULT_RATE_LIMIT, DEFAULT_RATE_WINDOW_SECONDS
from .state import RateLimitState, SessionState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_in_ms: int
    count: int

    @property
    def retry_after_seconds(self) -> int:
        return max(0, math.ceil(self.reset_in_ms / 1000))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "remaining": self.remaining,
            "resetIn": self.reset_in_ms,
            "count": self.count,
        }


class RateLimiter:
    """Counts requests in a fixed window stored on the session state.

    The window opens at the first request after ``reset_at`` and lasts
    ``window_seconds``; requests beyond ``max_requests`` inside it are denied.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_RATE_LIMIT,
        window_seconds: float = DEFAULT_RATE_WINDOW_SECONDS,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_ms = int(window_seconds * 1000)

    def check(self, state: SessionState, now_ms: int) -> RateLimitDecision:
        window = state.rate_limit
        if window is None or now_ms >= window.reset_at:
            window = RateLimitState(count=0, reset_at=now_ms + self.window_ms)
            state.rate_limit = window

        window.count += 1
        allowed = window.count <= self.max_requests
        decision = RateLimitDecision(
            allowed=allowed,
            remaining=max(0, self.max_requests - window.count),
            reset_in_ms=max(0, window.reset_at - now_ms),
            count=window.count,
        )
        if not allowed:
            logger.debug(
                f"Throttled request {window.count}/{self.max_requests}, "
                f"window resets in {decision.reset_in_ms}ms"
            )
        return decision
