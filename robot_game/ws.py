from __future__ import annotations

"""
File: robot_game/ws.py
Purpose: WebSocket connection manager for parent host clients.
Key responsibilities:
- Greet each parent client with its own READY envelope on connect.
- Reply to a single client (command errors go back to the sender only).
- Broadcast session events to every client and drop clients whose send fails.
"""

import asyncio
import json
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger("robot-game.ws")


def encode_envelope(envelope: dict[str, Any]) -> str:
    return json.dumps(envelope, separators=(",", ":"), sort_keys=True)


class WSManager:
    """Track parent clients and deliver game envelopes to them."""
    def __init__(self) -> None:
        self.clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, greeting: dict[str, Any] | None = None) -> None:
        """Accept and greet a client before it joins broadcasts, so READY arrives first."""
        await websocket.accept()
        if greeting is not None:
            await self.send(websocket, greeting)
        async with self._lock:
            self.clients.add(websocket)
        logger.info("parent client connected total=%s", len(self.clients))

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self.clients.discard(websocket)
        logger.info("parent client disconnected total=%s", len(self.clients))

    async def send(self, websocket: WebSocket, envelope: dict[str, Any]) -> None:
        await websocket.send_text(encode_envelope(envelope))
        logger.debug("sent type=%s to one client", envelope.get("type"))

    async def broadcast(self, envelope: dict[str, Any]) -> None:
        data = encode_envelope(envelope)
        stale: list[WebSocket] = []
        async with self._lock:
            clients = list(self.clients)
        for client in clients:
            try:
                await client.send_text(data)
            except Exception:  # noqa: BLE001
                stale.append(client)
        if stale:
            async with self._lock:
                for client in stale:
                    self.clients.discard(client)
            logger.info("dropped stale clients=%s type=%s", len(stale), envelope.get("type"))
