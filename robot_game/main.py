from __future__ import annotations

"""
File: robot_game/main.py
Purpose: Service entrypoint exposing the game bridge over HTTP, WebSocket and RabbitMQ.
Key responsibilities:
- Announce READY on startup and optionally start the MQ consumer.
- Accept commands on POST /api/commands and WS /ws (READY sent to each WS client).
Key entrypoints:
- startup_event()
- /health, /api/status, /api/commands, /ws
Config/env vars:
- GAME_HOST, GAME_PORT, LOG_LEVEL, RABBITMQ_*
"""

import asyncio
import logging
from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
import uvicorn

from robot_game.bridge import BridgeContext, GameBridge
from robot_game.mq_consumer import MQConsumer
from robot_game.settings import settings
from robot_game.transports import MQChannel, WebSocketChannel
from robot_game.ws import WSManager

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s robot-game %(message)s",
)
logger = logging.getLogger("robot-game")

app = FastAPI(title="robot-game", version=settings.game_version)
ws_manager = WSManager()
ws_channel = WebSocketChannel(ws_manager)
mq_channel = MQChannel()
bridge = GameBridge(BridgeContext(settings=settings, channels=[ws_channel, mq_channel]))
mq_consumer = MQConsumer(bridge, mq_channel)


@app.on_event("startup")
async def startup_event() -> None:
    """Start outbound pumps, the optional MQ consumer, and announce READY."""
    ws_channel.start()
    if settings.rabbit_enabled:
        asyncio.create_task(_start_mq())
    bridge.ready()
    logger.info("robot-game ready version=%s", settings.game_version)


async def _start_mq() -> None:
    try:
        await mq_consumer.start()
    except Exception as exc:  # noqa: BLE001
        logger.exception("mq consumer failed to start: %s", exc)


@app.on_event("shutdown")
async def shutdown_event() -> None:
    bridge.cancel_physical()
    await ws_channel.stop()
    await mq_consumer.stop()


@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness/readiness endpoint."""
    return {"status": "ok"}


@app.get("/api/status")
async def status() -> dict[str, Any]:
    """Current session status without emitting an event."""
    return bridge.status_payload()


@app.post("/api/commands")
async def post_command(payload: dict[str, Any]) -> dict[str, Any]:
    """Run one command envelope and return the events it produced."""
    return {"events": bridge.handle_message(payload)}


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Parent host channel: READY on connect, commands in, events out.

    Session events are broadcast to every client; a command's ERROR goes back
    to the client that sent it.
    """
    await ws_manager.connect(websocket, greeting=bridge.ready_envelope())
    try:
        while True:
            raw = await websocket.receive_text()
            replies: list[dict[str, Any]] = []
            bridge.handle_message(raw, reply=replies.append)
            for envelope in replies:
                await ws_manager.send(websocket, envelope)
    except WebSocketDisconnect:
        pass
    finally:
        await ws_manager.disconnect(websocket)


def run() -> None:
    uvicorn.run("robot_game.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
