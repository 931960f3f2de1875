from __future__ import annotations

"""
File: robot_game/mq.py
Purpose: RabbitMQ connectivity and topology for the game bridge.
Key responsibilities:
- Declare the game exchange and the inbound command queue.
- Publish game events as persistent JSON messages.
"""

import json
from typing import Any

import aio_pika
from aio_pika import ExchangeType

COMMAND_ROUTING_KEY = "game.command.#"


async def connect(rabbit_url: str) -> aio_pika.RobustConnection:
    """Connect to RabbitMQ with robust reconnect behavior."""
    return await aio_pika.connect_robust(rabbit_url)


async def setup_topology(
    channel: aio_pika.abc.AbstractRobustChannel, exchange_name: str, command_queue: str
):
    """Declare the topic exchange and bind the command queue."""
    exchange = await channel.declare_exchange(exchange_name, ExchangeType.TOPIC, durable=True)
    queue_commands = await channel.declare_queue(command_queue, durable=True)
    await queue_commands.bind(exchange, routing_key=COMMAND_ROUTING_KEY)
    return exchange, queue_commands


async def publish_event(exchange: aio_pika.abc.AbstractExchange, routing_key: str, payload: dict[str, Any]) -> None:
    """Publish a JSON message to the game exchange."""
    body = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    msg = aio_pika.Message(
        body=body,
        content_type="application/json",
        delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
    )
    await exchange.publish(msg, routing_key=routing_key)
