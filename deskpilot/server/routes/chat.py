"""Chat, direct execution, session state and notification routes."""

from fastapi import APIRouter, Depends, HTTPException

from ...constants import DEFAULT_SESSION_ID
from ...errors import RateLimitExceeded
from ..app import enforce_rate_limit, require_app, verify_api_key
from ..models import ChatRequest, ExecuteRequest, NotifyRequest

router = APIRouter()

_guarded = [Depends(verify_api_key), Depends(enforce_rate_limit)]


@router.post("/chat", dependencies=[Depends(verify_api_key)])
async def chat(req: ChatRequest, session_id: str = DEFAULT_SESSION_ID):
    # The turn does its own rate check under the session lock.
    orchestrator = await require_app().get_orchestrator()
    turn = await orchestrator.chat(session_id, req.message)
    if turn.throttled:
        raise RateLimitExceeded(turn.throttled)
    return turn.to_dict()


@router.post("/execute", dependencies=_guarded)
async def execute(req: ExecuteRequest, session_id: str = DEFAULT_SESSION_ID):
    if not req.tool.strip():
        raise HTTPException(400, "Tool name is required")
    orchestrator = await require_app().get_orchestrator()
    result = await orchestrator.execute_tool(session_id, req.tool, req.args)
    return result.to_dict()


@router.get("/state", dependencies=_guarded)
async def get_state(session_id: str = DEFAULT_SESSION_ID):
    orchestrator = await require_app().get_orchestrator()
    return await orchestrator.get_state(session_id)


@router.get("/history", dependencies=_guarded)
async def get_history(session_id: str = DEFAULT_SESSION_ID):
    orchestrator = await require_app().get_orchestrator()
    return await orchestrator.get_history(session_id)


@router.post("/clear", dependencies=_guarded)
async def clear_history(session_id: str = DEFAULT_SESSION_ID):
    """Clear conversation history only."""
    orchestrator = await require_app().get_orchestrator()
    await orchestrator.clear_history(session_id)
    return {"success": True}


@router.post("/reset", dependencies=_guarded)
async def reset(session_id: str = DEFAULT_SESSION_ID):
    """Clear history, pending action and schedules; preferences are kept."""
    orchestrator = await require_app().get_orchestrator()
    cancelled = await orchestrator.reset(session_id)
    return {
        "success": True,
        "message": "History cleared, preferences kept",
        "schedulesCancelled": cancelled,
    }


@router.post("/notify", dependencies=_guarded)
async def notify(req: NotifyRequest, session_id: str = DEFAULT_SESSION_ID):
    orchestrator = await require_app().get_orchestrator()
    delivered = await orchestrator.notify(session_id, req.title, req.message)
    return {"success": True, "delivered": delivered}


@router.get("/bridge", dependencies=_guarded)
async def bridge_status(session_id: str = DEFAULT_SESSION_ID):
    orchestrator = await require_app().get_orchestrator()
    status = await orchestrator.bridge_status(session_id)
    return status.to_dict()
