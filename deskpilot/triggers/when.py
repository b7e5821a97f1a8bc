"""Temporal expression parsing: free text -> instant or 5-field cron.

Schedule directives arrive inside model output, so ``parse_when`` is
total: anything it cannot read becomes "one minute from now".
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from ..constants import FALLBACK_DELAY_SECONDS

logger = logging.getLogger(__name__)

When = Union[datetime, str]

_CRON_FIELD = r"[\d*/,\-]+"
_CRON_RE = re.compile(rf"^{_CRON_FIELD}(\s+{_CRON_FIELD}){{4}}$")
_CLOCK = r"(?:at\s*)?(\d{1,2})(?::(\d{2}))?\s*(am|pm)?"
_DAILY_RE = re.compile(rf"every\s*day\s*{_CLOCK}", re.IGNORECASE)
_HOURLY_RE = re.compile(r"every\s*hour\b", re.IGNORECASE)
_MORNING_RE = re.compile(r"every\s*morning", re.IGNORECASE)
_EVENING_RE = re.compile(r"every\s*evening", re.IGNORECASE)
_EVERY_N_HOURS_RE = re.compile(r"every\s*(\d+)\s*hours?", re.IGNORECASE)
_WEEKDAY_RE = re.compile(rf"every\s*weekday\s*{_CLOCK}", re.IGNORECASE)
_RELATIVE_RE = re.compile(r"in\s+(\d+)\s*(second|minute|hour|day)s?", re.IGNORECASE)

_UNIT_SECONDS = {"second": 1, "minute": 60, "hour": 3600, "day": 86400}

MORNING_CRON = "0 7 * * *"
EVENING_CRON = "0 18 * * *"
HOURLY_CRON = "0 * * * *"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_24h(hour: int, meridiem: Optional[str]) -> int:
    meridiem = (meridiem or "").lower()
    if meridiem == "pm" and hour < 12:
        return hour + 12
    if meridiem == "am" and hour == 12:
        return 0
    return hour


def _clock_cron(match: "re.Match", dow: str) -> Optional[str]:
    hour = _to_24h(int(match.group(1)), match.group(3))
    minute = int(match.group(2)) if match.group(2) else 0
    if hour > 23 or minute > 59:
        return None
    return f"{minute} {hour} * * {dow}"


def _valid_cron(expr: str) -> bool:
    from croniter import croniter

    try:
        return bool(croniter.is_valid(expr))
    except Exception:
        return False


def _parse_date(text: str, now: datetime) -> Optional[datetime]:
    from dateutil import parser as date_parser

    def parse(default: datetime) -> datetime:
        parsed = date_parser.parse(text, default=default)
        if parsed.tzinfo is None:
            # Naive results are wall-clock times on this machine.
            parsed = parsed.astimezone()
        return parsed.astimezone(timezone.utc)

    try:
        default = now.astimezone().replace(second=0, microsecond=0, tzinfo=None)
        parsed = parse(default)
        if parsed <= now:
            # Without a date in the text, a passed clock time means its next occurrence.
            later = parse(default + timedelta(days=1))
            if later > parsed:
                parsed = later
        return parsed
    except Exception:
        return None


def parse_when(text: str, now: Optional[datetime] = None) -> When:
    """Parse a temporal expression.

    Args:
        text: e.g. ``"in 5 minutes"``, ``"every day at 9am"``, ``"0 9 * * 1-5"``.
        now: Reference time (timezone-aware); defaults to the current UTC time.

    Returns:
        A 5-field cron string for recurring expressions, otherwise a
        timezone-aware UTC ``datetime``. Never raises.
    """
    now = now or _utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    fallback = now + timedelta(seconds=FALLBACK_DELAY_SECONDS)

    if not isinstance(text, str) or not text.strip():
        return fallback
    when = text.strip()

    if _CRON_RE.match(when) and _valid_cron(when):
        return when

    match = _DAILY_RE.search(when)
    if match:
        cron = _clock_cron(match, "*")
        if cron:
            return cron

    if _HOURLY_RE.search(when):
        return HOURLY_CRON
    if _MORNING_RE.search(when):
        return MORNING_CRON
    if _EVENING_RE.search(when):
        return EVENING_CRON

    match = _EVERY_N_HOURS_RE.search(when)
    if match and 0 < int(match.group(1)) <= 23:
        return f"0 */{int(match.group(1))} * * *"

    match = _WEEKDAY_RE.search(when)
    if match:
        cron = _clock_cron(match, "1-5")
        if cron:
            return cron

    match = _RELATIVE_RE.search(when)
    if match:
        seconds = int(match.group(1)) * _UNIT_SECONDS[match.group(2).lower()]
        try:
            return now + timedelta(seconds=seconds)
        except OverflowError:
            return fallback

    parsed = _parse_date(when, now)
    if parsed is not None:
        return parsed

    logger.debug(f"Unparseable schedule expression {when!r}, defaulting to +{FALLBACK_DELAY_SECONDS}s")
    return fallback


def is_recurring(when: When) -> bool:
    """Cron strings recur; instants fire once."""
    return isinstance(when, str)


def describe_when(when: When) -> str:
    """Stable string form: the cron expression or an ISO-8601 instant."""
    if isinstance(when, datetime):
        return when.astimezone(timezone.utc).isoformat()
    return when
