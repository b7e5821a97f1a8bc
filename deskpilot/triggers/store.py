"""TriggerStore — JSON file persistence for scheduler triggers."""

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from ..jsonfile import read_json, write_json_atomic
from .models import ScheduledTrigger

logger = logging.getLogger(__name__)

STORE_VERSION = 1


class TriggerStore:
    """Persistence for scheduler triggers.

    All triggers live in a single JSON file written atomically (temp
    file + rename) with a ``.bak`` of the previous version. Pass
    ``store_path=None`` for a purely in-memory store.
    """

    def __init__(self, store_path: Optional[str] = "~/.deskpilot/schedules.json"):
        self._store_path = Path(os.path.expanduser(store_path)) if store_path else None
        self._triggers: Dict[str, ScheduledTrigger] = {}

    @property
    def store_path(self) -> Optional[Path]:
        return self._store_path

    async def load(self) -> None:
        """Load triggers from disk. Starts empty if the file doesn't exist."""
        if self._store_path is None:
            return
        try:
            data = read_json(self._store_path)
        except Exception as e:
            logger.error(f"Failed to load trigger store from {self._store_path}: {e}")
            self._triggers = {}
            return

        if data is None:
            logger.info(f"Trigger store not found at {self._store_path}, starting empty")
            self._triggers = {}
            return

        version = data.get("version", 1)
        if version != STORE_VERSION:
            logger.warning(f"Trigger store version mismatch: expected {STORE_VERSION}, got {version}")

        self._triggers = {}
        for entry in data.get("triggers", []):
            try:
                trigger = ScheduledTrigger.from_dict(entry)
                self._triggers[trigger.id] = trigger
            except Exception as e:
                logger.warning(f"Skipping invalid trigger entry: {e}")

        logger.info(f"Loaded {len(self._triggers)} triggers from {self._store_path}")

    async def save(self) -> None:
        """Persist triggers to disk."""
        if self._store_path is None:
            return
        write_json_atomic(self._store_path, {
            "version": STORE_VERSION,
            "triggers": [t.to_dict() for t in self._triggers.values()],
        })

    def get(self, trigger_id: str) -> Optional[ScheduledTrigger]:
        return self._triggers.get(trigger_id)

    def list(self, session_id: Optional[str] = None) -> List[ScheduledTrigger]:
        """List triggers, optionally for one session, soonest first."""
        triggers = list(self._triggers.values())
        if session_id is not None:
            triggers = [t for t in triggers if t.session_id == session_id]
        triggers.sort(key=lambda t: t.next_run_at_ms if t.next_run_at_ms is not None else float("inf"))
        return triggers

    def add(self, trigger: ScheduledTrigger) -> None:
        self._triggers[trigger.id] = trigger

    def update(self, trigger: ScheduledTrigger) -> None:
        self._triggers[trigger.id] = trigger

    def remove(self, trigger_id: str) -> bool:
        return self._triggers.pop(trigger_id, None) is not None

    def get_next_due_time(self) -> Optional[int]:
        """Earliest next_run_at_ms across triggers that are not running."""
        earliest: Optional[int] = None
        for trigger in self._triggers.values():
            if trigger.running_at_ms is not None:
                continue
            nra = trigger.next_run_at_ms
            if nra is not None and (earliest is None or nra < earliest):
                earliest = nra
        return earliest
