"""
DeskPilot Triggers - temporal parsing and the durable scheduler

Usage:
    from deskpilot.triggers import Scheduler, TriggerPayload, parse_when

    when = parse_when("every day at 9am")      # "0 9 * * *"
    trigger = await scheduler.schedule("default", when,
                                       TriggerPayload(tool="notify", args={"message": "hi"}))
"""

from .models import AtSpec, CronSpec, ScheduledTrigger, TriggerPayload, TriggerSpec
from .service import Scheduler
from .store import TriggerStore
from .when import When, describe_when, is_recurring, parse_when

__all__ = [
    "AtSpec",
    "CronSpec",
    "ScheduledTrigger",
    "Scheduler",
    "TriggerPayload",
    "TriggerSpec",
    "TriggerStore",
    "When",
    "describe_when",
    "is_recurring",
    "parse_when",
]
