"""Schedule listing and cancellation routes."""

from fastapi import APIRouter, Depends

from ...constants import DEFAULT_SESSION_ID
from ..app import enforce_rate_limit, require_app, verify_api_key

router = APIRouter()

_guarded = [Depends(verify_api_key), Depends(enforce_rate_limit)]


@router.get("/schedules", dependencies=_guarded)
async def list_schedules(session_id: str = DEFAULT_SESSION_ID):
    orchestrator = await require_app().get_orchestrator()
    return {"schedules": await orchestrator.list_schedules(session_id)}


@router.delete("/schedules/{schedule_id}", dependencies=_guarded)
async def cancel_schedule(schedule_id: str, session_id: str = DEFAULT_SESSION_ID):
    """Cancel a schedule. Unknown ids still succeed."""
    orchestrator = await require_app().get_orchestrator()
    await orchestrator.cancel_schedule(session_id, schedule_id)
    return {"success": True}
