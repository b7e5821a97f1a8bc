"""WebSocket real-time channel."""

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ...constants import DEFAULT_SESSION_ID
from ...streaming.models import EventType, RealtimeEvent, notification_event, ping_event
from ..app import require_app, token_matches

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def realtime(websocket: WebSocket, session_id: str = DEFAULT_SESSION_ID):
    app = require_app()
    orchestrator = await app.get_orchestrator()
    hub = orchestrator.hub

    await websocket.accept()
    listener = websocket.send_json
    hub.register(session_id, listener)
    try:
        await websocket.send_json(
            notification_event("Connected", "Real-time updates enabled").to_dict()
        )
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except ValueError:
                continue
            if not isinstance(data, dict):
                continue

            kind = data.get("type")
            if kind == "ping":
                await websocket.send_json(ping_event().to_dict())
            elif kind == "chat" and data.get("message"):
                if not token_matches(data.get("token"), app.api_secret):
                    await websocket.send_json(notification_event("Error", "Invalid token").to_dict())
                    continue
                turn = await orchestrator.chat(session_id, str(data["message"]))
                await websocket.send_json(RealtimeEvent(EventType.CHAT, turn.to_dict()).to_dict())
    except WebSocketDisconnect:
        logger.debug(f"WebSocket closed for session {session_id}")
    finally:
        hub.unregister(session_id, listener)
