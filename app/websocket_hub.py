from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fastapi import WebSocket

from app.api.models import GameRoom
from app.turn_processing.turns import view_for

logger = logging.getLogger(__name__)


class RoomWebSocketHub:
    """Pushes committed rooms to the clients watching them.

    Each connection is registered with the player it authenticated as (or
    None for spectators), and receives the room as that player may see it,
    so the attacker's socket never carries the electric chair.
    """

    def __init__(self) -> None:
        self._viewers: dict[str, dict[WebSocket, str | None]] = defaultdict(dict)
        self._lock = asyncio.Lock()

    async def connect(self, room_id: str, websocket: WebSocket, *, viewer_id: str | None) -> None:
        await websocket.accept()
        async with self._lock:
            self._viewers[room_id][websocket] = viewer_id
        logger.debug("room=%s websocket connected viewer=%s", room_id, viewer_id)

    async def disconnect(self, room_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            conns = self._viewers.get(room_id)
            if not conns:
                return
            conns.pop(websocket, None)
            if not conns:
                self._viewers.pop(room_id, None)

    async def publish_room(self, room: GameRoom) -> None:
        async with self._lock:
            conns = list(self._viewers.get(room.room_id, {}).items())

        dead: list[WebSocket] = []
        for ws, viewer_id in conns:
            view = view_for(room, viewer_id=viewer_id)
            try:
                await ws.send_json(
                    {
                        "type": "room_updated",
                        "room_id": room.room_id,
                        "version": room.version,
                        "room": view.model_dump(mode="json"),
                    }
                )
            except Exception:
                logger.debug("room=%s dropping dead websocket", room.room_id, exc_info=True)
                dead.append(ws)

        if dead:
            async with self._lock:
                conns_by_ws = self._viewers.get(room.room_id, {})
                for ws in dead:
                    conns_by_ws.pop(ws, None)


hub = RoomWebSocketHub()
