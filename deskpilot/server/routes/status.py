"""Unauthenticated liveness routes."""

from datetime import datetime, timezone

from fastapi import APIRouter

from ..app import require_app

router = APIRouter()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
async def root():
    app = require_app()
    return {"status": "online", "agent": app.agent_name, "timestamp": _timestamp()}


@router.get("/health")
async def health():
    orchestrator = await require_app().get_orchestrator()
    return {"status": "awake", "timestamp": _timestamp(), "schedules": orchestrator.schedule_count()}
