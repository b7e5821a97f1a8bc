"""DeskPilot exception types."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .orchestrator.rate_limit import RateLimitDecision


class DeskPilotError(Exception):
    """Base class for DeskPilot errors."""


class ConfigError(DeskPilotError):
    """Configuration file is missing required fields or is malformed."""


class RateLimitExceeded(DeskPilotError):
    """Raised by the HTTP surface when a session exceeds its request window."""

    def __init__(self, decision: "RateLimitDecision"):
        self.decision = decision
        super().__init__(
            f"Rate limit exceeded, retry in {decision.retry_after_seconds}s"
        )
