"""
DeskPilot Session Pool - one state blob and one lock per session

This module provides:
- SessionPool: lazily loads session state and serializes access per session
- Memory and JSON-file backends for state persistence

Every read-modify-write of a session happens inside ``pool.session(id)``,
which holds that session's asyncio.Lock for the duration and persists the
state on exit. Different sessions never share a lock.
"""

import asyncio
import hashlib
import logging
import os
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

from ..jsonfile import read_json, write_json_atomic
from .state import SessionState

logger = logging.getLogger(__name__)

class SessionBackend(ABC):
    """Abstract base class for session storage backends"""

    @abstractmethod
    async def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Load a session's wire-form state; None if never saved"""
        pass

    @abstractmethod
    async def save(self, session_id: str, data: Dict[str, Any]) -> None:
        """Persist a session's wire-form state"""
        pass

    @abstractmethod
    async def list_sessions(self) -> List[str]:
        """Ids of every stored session"""
        pass

    async def close(self) -> None:
        """Close backend resources. Override in subclasses that need cleanup."""
        pass


class MemorySessionBackend(SessionBackend):
    """In-memory backend for development/testing"""

    def __init__(self):
        self._sessions: Dict[str, Dict[str, Any]] = {}

    async def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        return self._sessions.get(session_id)

    async def save(self, session_id: str, data: Dict[str, Any]) -> None:
        self._sessions[session_id] = data

    async def list_sessions(self) -> List[str]:
        return list(self._sessions)


class FileSessionBackend(SessionBackend):
    """One JSON file per session under ``sessions_dir``.

    Files are named by a digest of the session id, so distinct ids never
    share a file even on case-insensitive filesystems. The id itself is
    stored in the file as ``sessionId``.
    """

    def __init__(self, sessions_dir: str = "~/.deskpilot/sessions"):
        self._dir = Path(os.path.expanduser(sessions_dir))

    def _path(self, session_id: str) -> Path:
        digest = hashlib.sha256(session_id.encode("utf-8")).hexdigest()
        return self._dir / f"{digest}.json"

    async def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        return read_json(self._path(session_id))

    async def save(self, session_id: str, data: Dict[str, Any]) -> None:
        write_json_atomic(self._path(session_id), {"sessionId": session_id, **data})

    async def list_sessions(self) -> List[str]:
        if not self._dir.exists():
            return []
        session_ids = []
        for path in self._dir.glob("*.json"):
            try:
                data = read_json(path)
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable session file {path.name}: {e}")
                continue
            if isinstance(data, dict) and isinstance(data.get("sessionId"), str):
                session_ids.append(data["sessionId"])
        return sorted(session_ids)


class SessionPool:
    """
    Owns every SessionState and the lock that serializes it.

    Usage:
        pool = SessionPool(FileSessionBackend("~/.deskpilot/sessions"))

        async with pool.session("default") as state:
            state.append_exchange("hi", "hello")
        # state persisted, lock released
    """

    def __init__(self, backend: Optional[SessionBackend] = None):
        self._backend = backend or MemorySessionBackend()
        self._states: Dict[str, SessionState] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    @property
    def backend(self) -> SessionBackend:
        return self._backend

    def lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    async def _load(self, session_id: str) -> SessionState:
        state = self._states.get(session_id)
        if state is not None:
            return state

        try:
            data = await self._backend.load(session_id)
            state = SessionState.from_dict(data) if data else SessionState()
        except Exception as e:
            logger.error(f"Failed to load state for session {session_id}, starting fresh: {e}")
            state = SessionState()

        self._states[session_id] = state
        return state

    async def _persist(self, session_id: str, state: SessionState) -> None:
        try:
            await self._backend.save(session_id, state.to_dict())
        except Exception as e:
            logger.error(f"Failed to persist state for session {session_id}: {e}")

    @asynccontextmanager
    async def session(self, session_id: str) -> AsyncIterator[SessionState]:
        """Hold the session's lock and yield its state; persist on exit."""
        async with self.lock_for(session_id):
            state = await self._load(session_id)
            try:
                yield state
            finally:
                await self._persist(session_id, state)

    async def snapshot(self, session_id: str) -> SessionState:
        """Consistent copy of a session's state for read-only callers."""
        async with self.lock_for(session_id):
            state = await self._load(session_id)
            return SessionState.from_dict(state.to_dict())

    async def list_sessions(self) -> List[str]:
        stored = await self._backend.list_sessions()
        return sorted(set(stored) | set(self._states))

    async def close(self) -> None:
        for session_id, state in list(self._states.items()):
            async with self.lock_for(session_id):
                await self._persist(session_id, state)
        await self._backend.close()
