"""Scheduler — timer-based trigger service with schedule/cancel API."""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set

from .models import ScheduledTrigger, TriggerPayload, spec_from_when
from .schedule import compute_trigger_next_run_at_ms, now_ms, recompute_next_runs
from .store import TriggerStore
from .when import When

logger = logging.getLogger(__name__)

# Maximum sleep interval before checking again
MAX_SLEEP_S = 60.0

# Minimum sleep to avoid busy-spin
MIN_SLEEP_S = 0.1

TriggerHandler = Callable[[ScheduledTrigger], Awaitable[None]]


class Scheduler:
    """Durable registry of pending one-time and recurring triggers.

    Timer-based: sleeps until the next trigger is due (capped at 60s),
    then fires every due trigger through the handler. Woken immediately
    when triggers are added or cancelled.

    Firing is at-least-once. The store is saved only after the handler
    returns, so a crash in between re-fires the trigger on restart; the
    scheduled tool must tolerate running twice.

    Usage:
        scheduler = Scheduler(TriggerStore("~/.deskpilot/schedules.json"))
        scheduler.set_handler(orchestrator.run_scheduled)
        await scheduler.start()
        trigger = await scheduler.schedule("default", parse_when("in 5 minutes"),
                                           TriggerPayload(tool="notify", args={"message": "hi"}))
        await scheduler.cancel(trigger.id)
    """

    def __init__(self, store: Optional[TriggerStore] = None, handler: Optional[TriggerHandler] = None):
        self._store = store or TriggerStore(store_path=None)
        self._handler = handler
        self._running = False
        self._loop_task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self._wake = asyncio.Event()

    def set_handler(self, handler: TriggerHandler) -> None:
        self._handler = handler

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Load persisted triggers and start the timer loop."""
        if self._running:
            return

        await self._store.load()
        triggers = self._store.list()
        for trigger in triggers:
            # A trigger marked running at shutdown never finished.
            trigger.running_at_ms = None
        recompute_next_runs(triggers)
        await self._store.save()

        self._running = True
        self._loop_task = asyncio.create_task(self._timer_loop())
        logger.info(f"Scheduler started ({len(triggers)} triggers loaded)")

    async def stop(self) -> None:
        """Stop the timer loop."""
        self._running = False
        self._wake.set()
        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        # Unfinished firings were never saved, so they run again after restart.
        for task in list(self._inflight):
            task.cancel()
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        self._inflight.clear()
        logger.info("Scheduler stopped")

    # ------------------------------------------------------------------
    # API
    # ------------------------------------------------------------------

    async def schedule(
        self,
        session_id: str,
        when: When,
        payload: TriggerPayload,
        tz: Optional[str] = None,
    ) -> ScheduledTrigger:
        """Register a trigger for an instant or a cron expression."""
        trigger = ScheduledTrigger(
            session_id=session_id,
            spec=spec_from_when(when, tz=tz),
            payload=payload,
        )
        trigger.next_run_at_ms = compute_trigger_next_run_at_ms(trigger, now_ms())

        self._store.add(trigger)
        await self._store.save()
        self._wake.set()

        logger.info(
            f"Scheduled {trigger.schedule_type} trigger {trigger.id} "
            f"for session {session_id}: {payload.tool}"
        )
        return trigger

    async def cancel(self, trigger_id: str) -> bool:
        """Remove a trigger. Unknown ids are a no-op and return False."""
        removed = self._store.remove(trigger_id)
        if removed:
            await self._store.save()
            self._wake.set()
            logger.info(f"Cancelled trigger {trigger_id}")
        return removed

    def get_trigger(self, trigger_id: str) -> Optional[ScheduledTrigger]:
        return self._store.get(trigger_id)

    def list_triggers(self, session_id: Optional[str] = None) -> List[ScheduledTrigger]:
        return self._store.list(session_id=session_id)

    async def fire(self, trigger_id: str) -> bool:
        """Run a trigger now, regardless of its schedule."""
        trigger = self._store.get(trigger_id)
        if trigger is None:
            return False
        await self._execute(trigger)
        return True

    def status(self) -> dict:
        triggers = self._store.list()
        next_due = self._store.get_next_due_time()
        return {
            "running": self._running,
            "total_triggers": len(triggers),
            "next_due_at_ms": next_due,
            "next_due_in_seconds": (
                max(0, (next_due - now_ms()) / 1000) if next_due else None
            ),
        }

    # ------------------------------------------------------------------
    # Timer loop
    # ------------------------------------------------------------------

    async def _timer_loop(self) -> None:
        while self._running:
            try:
                await self._tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Scheduler tick error: {e}")
                await asyncio.sleep(1)

    async def _tick(self) -> None:
        next_due = self._store.get_next_due_time()
        if next_due is not None:
            sleep_s = max(MIN_SLEEP_S, min((next_due - now_ms()) / 1000, MAX_SLEEP_S))
        else:
            sleep_s = MAX_SLEEP_S

        self._wake.clear()
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=sleep_s)
        except asyncio.TimeoutError:
            pass

        if not self._running:
            return

        self._dispatch_due()

    def _dispatch_due(self) -> List[asyncio.Task]:
        """Start a task per due trigger without waiting for any of them.

        A handler blocked on one session's lock must not hold back
        triggers belonging to other sessions.
        """
        now = now_ms()
        due = [
            t for t in self._store.list()
            if t.running_at_ms is None and t.next_run_at_ms is not None and t.next_run_at_ms <= now
        ]
        if not due:
            return []

        logger.info(f"Firing {len(due)} due trigger(s)")
        tasks = []
        for trigger in due:
            trigger.running_at_ms = now
            task = asyncio.create_task(self._execute(trigger))
            self._inflight.add(task)
            task.add_done_callback(self._on_task_done)
            tasks.append(task)
        return tasks

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Trigger task failed: {exc}")

    async def fire_due(self) -> int:
        """Fire every trigger whose time has come and wait for them. Returns how many fired."""
        tasks = self._dispatch_due()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        return len(tasks)

    async def _execute(self, trigger: ScheduledTrigger) -> None:
        trigger.running_at_ms = trigger.running_at_ms or now_ms()
        try:
            if self._handler is None:
                logger.warning(f"No handler registered, trigger {trigger.id} fired without effect")
            else:
                await self._handler(trigger)
        except Exception as e:
            logger.error(f"Trigger {trigger.id} handler error: {e}")
        finally:
            trigger.running_at_ms = None

        trigger.last_run_at_ms = now_ms()
        trigger.run_count += 1

        if self._store.get(trigger.id) is None:
            # Cancelled while running.
            return
        if trigger.is_one_time:
            self._store.remove(trigger.id)
        else:
            trigger.next_run_at_ms = compute_trigger_next_run_at_ms(trigger, now_ms())
            self._store.update(trigger)
        await self._store.save()
