# broadcast.py — Fan-out of task events to live WebSocket subscribers
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import WebSocket

logger = logging.getLogger("taskboard.ws")

# Client-originated notices relayed verbatim to the other subscribers
RELAYED_NOTICES = {
    "task:created", "task:updated", "task:archived",
    "task:restored", "task:deleted", "task:commented",
}


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ConnectionInfo:
    connected_at: str
    user: Optional[str] = None
    send_lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class BroadcastHub:
    """Registry of open subscriber connections and best-effort fan-out.

    Sends to one connection are serialized so events reach each client in the
    order they were issued. A connection whose send fails is dropped from the
    registry; the failure never reaches the caller.
    """

    def __init__(self):
        self._connections: Dict[WebSocket, ConnectionInfo] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, websocket: WebSocket) -> bool:
        return websocket in self._connections

    async def connect(self, websocket: WebSocket, user: Optional[str] = None) -> ConnectionInfo:
        await websocket.accept()
        info = ConnectionInfo(connected_at=_timestamp(), user=user)
        self._connections[websocket] = info
        logger.info(f"WS connected: user={user or '-'} (active={len(self._connections)})")
        await self.send(websocket, {"type": "connected", "timestamp": info.connected_at})
        return info

    def disconnect(self, websocket: WebSocket) -> None:
        info = self._connections.pop(websocket, None)
        if info is not None:
            logger.info(f"WS disconnected: user={info.user or '-'} (active={len(self._connections)})")

    async def send(self, websocket: WebSocket, message: dict) -> bool:
        info = self._connections.get(websocket)
        if info is None:
            return False
        try:
            async with info.send_lock:
                await websocket.send_json(message)
        except Exception as e:
            logger.warning(f"WS send failed for user={info.user or '-'}: {e} (pruning)")
            self.disconnect(websocket)
            return False
        return True

    async def broadcast(self, message: dict, exclude: Optional[WebSocket] = None) -> int:
        """Deliver ``message`` to every open connection except ``exclude``.

        Returns the number of connections that accepted the message.
        """
        targets = [ws for ws in list(self._connections) if ws is not exclude]
        if not targets:
            return 0
        results = await asyncio.gather(*(self.send(ws, message) for ws in targets))
        return sum(1 for ok in results if ok)

    async def notify_mutation(self, kind: str, task: dict, **extra: Any) -> int:
        """Announce a saved mutation to every subscriber, the originator included."""
        message = {"type": f"task:{kind}", "task": task, "timestamp": _timestamp(), **extra}
        return await self.broadcast(message)

    async def handle_message(self, websocket: WebSocket, data: Any) -> None:
        """Dispatch one inbound control message from ``websocket``."""
        if not isinstance(data, dict):
            logger.debug(f"WS ignoring non-object message: {data!r}")
            return
        msg_type = data.get("type", "")
        info = self._connections.get(websocket)

        if msg_type == "ping":
            await self.send(websocket, {"type": "pong", "timestamp": _timestamp()})

        elif msg_type == "typing":
            await self.broadcast({
                "type": "user:typing",
                "user": data.get("user") or (info.user if info else None),
                "taskId": data.get("taskId"),
                "timestamp": _timestamp(),
            }, exclude=websocket)

        elif msg_type in RELAYED_NOTICES:
            await self.broadcast({**data, "timestamp": _timestamp()}, exclude=websocket)

        else:
            logger.debug(f"WS ignoring unknown message type {msg_type!r}")

    def stats(self) -> dict:
        return {
            "total_connections": len(self._connections),
            "users": sorted({i.user for i in self._connections.values() if i.user}),
        }
