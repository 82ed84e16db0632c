# routers/websocket_router.py — Real-time task board push channel
import json
import logging
from typing import Optional

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect, Query

router = APIRouter(tags=["WebSocket"])
logger = logging.getLogger("taskboard.ws")


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    user: Optional[str] = Query(None),
):
    """Push channel: task events out, heartbeats and typing notices in"""
    hub = websocket.app.state.hub
    await hub.connect(websocket, user=user)

    try:
        while True:
            try:
                data = await websocket.receive_json()
            except json.JSONDecodeError:
                logger.debug("WS dropped malformed frame")
                continue
            await hub.handle_message(websocket, data)

    except WebSocketDisconnect:
        hub.disconnect(websocket)
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
        hub.disconnect(websocket)


@router.get("/ws/stats")
async def websocket_stats(request: Request):
    """Get WebSocket connection statistics"""
    return request.app.state.hub.stats()
