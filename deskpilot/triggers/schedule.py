"""Trigger schedule computation — one-shot instants and cron expressions."""

import logging
import time
from datetime import datetime, timezone
from typing import List, Optional

from .models import AtSpec, CronSpec, ScheduledTrigger, TriggerSpec

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current time in milliseconds."""
    return int(time.time() * 1000)


def _parse_iso_to_ms(iso_str: str) -> Optional[int]:
    """Parse an ISO 8601 datetime string to milliseconds since epoch."""
    try:
        dt = datetime.fromisoformat(iso_str)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp() * 1000)
    except (TypeError, ValueError):
        return None


def _resolve_timezone(tz: Optional[str]):
    """Resolve an IANA timezone string; None means the host's local zone."""
    if not tz:
        return None
    try:
        from zoneinfo import ZoneInfo
        return ZoneInfo(tz)
    except Exception as e:
        logger.warning(f"Unknown timezone {tz!r}, using local time: {e}")
        return None


def _compute_cron_next_ms(expr: str, tz: Optional[str], now_ms_val: int) -> Optional[int]:
    """Compute next cron fire time using croniter."""
    from croniter import croniter

    try:
        tzinfo = _resolve_timezone(tz)
        now_dt = datetime.fromtimestamp(now_ms_val / 1000, tz=timezone.utc)
        now_dt = now_dt.astimezone(tzinfo) if tzinfo else now_dt.astimezone()

        next_dt = croniter(expr, now_dt).get_next(datetime)
        next_ms = int(next_dt.timestamp() * 1000)

        # Guard: croniter can return the current second; advance past it
        if next_ms <= now_ms_val:
            next_second_ms = (now_ms_val // 1000) * 1000 + 1000
            now_dt2 = datetime.fromtimestamp(next_second_ms / 1000, tz=timezone.utc)
            now_dt2 = now_dt2.astimezone(tzinfo) if tzinfo else now_dt2.astimezone()
            next_ms = int(croniter(expr, now_dt2).get_next(datetime).timestamp() * 1000)

        return next_ms
    except Exception as e:
        logger.warning(f"Cron schedule computation failed for '{expr}': {e}")
        return None


def compute_next_run_at_ms(spec: TriggerSpec, now_ms_val: int) -> Optional[int]:
    """Next fire time for a spec.

    One-shot instants in the past are still returned: they fire on the
    next tick instead of being silently dropped.
    """
    if isinstance(spec, AtSpec):
        return _parse_iso_to_ms(spec.at)
    if isinstance(spec, CronSpec):
        return _compute_cron_next_ms(spec.expr, spec.tz, now_ms_val)
    return None


def compute_trigger_next_run_at_ms(trigger: ScheduledTrigger, now_ms_val: int) -> Optional[int]:
    """Next fire time for a trigger, honouring its run history."""
    if trigger.is_one_time and trigger.last_run_at_ms is not None:
        return None
    return compute_next_run_at_ms(trigger.spec, now_ms_val)


def recompute_next_runs(triggers: List[ScheduledTrigger], now_ms_val: Optional[int] = None) -> None:
    """Recompute next-run times after a restart.

    Overdue one-shot triggers keep their past time and fire once; overdue
    recurring triggers skip the missed occurrences.
    """
    if now_ms_val is None:
        now_ms_val = now_ms()

    for trigger in triggers:
        nra = trigger.next_run_at_ms
        if nra is None or (not trigger.is_one_time and nra <= now_ms_val):
            trigger.next_run_at_ms = compute_trigger_next_run_at_ms(trigger, now_ms_val)
