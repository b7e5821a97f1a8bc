"""
DeskPilot - natural-language control of a remote device

A completion model turns chat messages into tool invocations that a local
execution agent (the bridge) carries out. Sensitive actions wait for the
user's confirmation; future and recurring requests run on a schedule and
report back over a real-time channel.

Quick Start:
    from deskpilot import DeskPilot

    app = DeskPilot("config.yaml")
    await app.start()
    turn = await app.chat("default", "play some jazz")
    print(turn.message)

Serving over HTTP:
    python -m deskpilot.server.main --config config.yaml
"""

from .app import DeskPilot
from .errors import ConfigError, DeskPilotError, RateLimitExceeded
from .orchestrator import ChatTurn, SessionOrchestrator, SessionState
from .triggers import Scheduler, parse_when

__version__ = "0.1.0"

__all__ = [
    "ChatTurn",
    "ConfigError",
    "DeskPilot",
    "DeskPilotError",
    "RateLimitExceeded",
    "Scheduler",
    "SessionOrchestrator",
    "SessionState",
    "parse_when",
]
