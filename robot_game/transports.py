from __future__ import annotations

"""
File: robot_game/transports.py
Purpose: Outbound event channels used by the bridge.
Key responsibilities:
- Host bridge: post_message(JSON string) and emit(type, data) when present.
- WebSocket clients and RabbitMQ: non-blocking enqueue, drained by an async pump.
"""

import asyncio
import json
import logging
from typing import Any, Optional, Protocol

import aio_pika

from robot_game.mq import publish_event
from robot_game.ws import WSManager

logger = logging.getLogger("robot-game.transports")


class EventChannel(Protocol):
    """Something an event envelope can be handed to without awaiting."""

    @property
    def available(self) -> bool:
        ...

    def deliver(self, envelope: dict[str, Any]) -> None:
        ...


class HostBridgeChannel:
    """Embedding host exposing post_message and/or emit."""

    def __init__(self, host: Any) -> None:
        self.host = host

    @property
    def available(self) -> bool:
        return self.host is not None and (
            callable(getattr(self.host, "post_message", None)) or callable(getattr(self.host, "emit", None))
        )

    def deliver(self, envelope: dict[str, Any]) -> None:
        post_message = getattr(self.host, "post_message", None)
        if callable(post_message):
            post_message(json.dumps(envelope, separators=(",", ":")))
        emit = getattr(self.host, "emit", None)
        if callable(emit):
            emit(envelope["type"], envelope["data"])


class _QueuedChannel:
    """Buffers envelopes for an async sender so the bridge never awaits."""

    name = "queued"

    def __init__(self) -> None:
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None

    def deliver(self, envelope: dict[str, Any]) -> None:
        self.queue.put_nowait(envelope)

    def start(self) -> None:
        """Start the pump on the running loop with a fresh queue bound to it."""
        if self._task is None or self._task.done():
            self.queue = asyncio.Queue()
            self._task = asyncio.create_task(self._pump())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def drain(self) -> None:
        """Send everything queued so far (used at shutdown and in tests)."""
        while not self.queue.empty():
            await self._send_one(self.queue.get_nowait())

    async def _pump(self) -> None:
        while True:
            envelope = await self.queue.get()
            await self._send_one(envelope)

    async def _send_one(self, envelope: dict[str, Any]) -> None:
        try:
            await self._send(envelope)
        except Exception as exc:  # noqa: BLE001
            logger.exception("%s channel send failed type=%s: %s", self.name, envelope.get("type"), exc)

    async def _send(self, envelope: dict[str, Any]) -> None:
        raise NotImplementedError


class WebSocketChannel(_QueuedChannel):
    """Broadcast events to every connected parent client."""

    name = "websocket"

    def __init__(self, ws_manager: WSManager) -> None:
        super().__init__()
        self.ws_manager = ws_manager

    @property
    def available(self) -> bool:
        return bool(self.ws_manager.clients)

    async def _send(self, envelope: dict[str, Any]) -> None:
        await self.ws_manager.broadcast(envelope)


class MQChannel(_QueuedChannel):
    """Publish events to the game exchange as game.event.<type>."""

    name = "rabbitmq"

    def __init__(self) -> None:
        super().__init__()
        self.exchange: Optional[aio_pika.abc.AbstractExchange] = None

    @property
    def available(self) -> bool:
        return self.exchange is not None

    def attach(self, exchange: aio_pika.abc.AbstractExchange) -> None:
        self.exchange = exchange
        self.start()

    async def _send(self, envelope: dict[str, Any]) -> None:
        if self.exchange is None:
            return
        await publish_event(self.exchange, f"game.event.{envelope['type']}", envelope)
